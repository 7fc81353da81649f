from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SubmissionCreate(BaseModel):
    name: str | None = None
    email: str | None = None
    city: str | None = None
    type: str | None = None
    details: str | None = None
    contact: str | None = None


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    city: str | None = None
    type: str | None = None
    details: str | None = None
    contact: str | None = None
    created_at: datetime | None = None

    @staticmethod
    def sheet_headers() -> list[str]:
        return ["ID", "Submitted At", "Name", "Email", "City", "Type", "Details", "Contact"]

    def to_sheet_row(self, submitted_at: str) -> list[str]:
        return [
            str(self.id),
            submitted_at,
            self.name or "",
            self.email or "",
            self.city or "",
            self.type or "",
            self.details or "",
            self.contact or "",
        ]

    def to_feishu_fields(self, submitted_at: str) -> dict[str, str]:
        return {
            "ID": str(self.id),
            "姓名": self.name or "",
            "邮箱": self.email or "",
            "城市": self.city or "",
            "需求": self.type or "",
            "主题内容": self.details or "",
            "备用联系方式": self.contact or "",
            "创建时间": submitted_at,
        }
