from app.models.forum_post import ForumPost
from app.models.page_view import PageView
from app.models.submission import Submission

__all__ = [
    "ForumPost",
    "PageView",
    "Submission",
]
