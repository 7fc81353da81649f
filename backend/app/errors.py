class TemplateMissingError(Exception):
    """A page partial required to render a page could not be read."""

    def __init__(self, name: str, message: str = "页面模板缺失"):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class CompanyDataError(Exception):
    """The companies data file exists but cannot be used."""

    message = "企业数据读取失败"


class ApiError(Exception):
    """JSON API failure rendered as ``{"ok": false, "message": ...}``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
