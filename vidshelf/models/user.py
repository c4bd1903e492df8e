"""
User Model

Accounts are created and authenticated by the account service; the catalog
only reads them to resolve the caller and to show an uploader's public
summary (id + username) next to their videos and comments.

Database Tables:
----------------
- users: public account identity
"""

from sqlalchemy import Boolean
from sqlalchemy.orm import Mapped, mapped_column

from vidshelf.db.base import BaseModel, String50


class User(BaseModel):
    """
    User model - the public identity of an uploader / commenter.

    Table: users
    ------------
    - username: unique handle, doubles as the display name
    - is_active: disabled accounts can still be read but cannot act
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String50,
        unique=True,
        index=True,
        nullable=False,
        comment="Unique handle, shown as the display name"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Whether the account may publish, like and comment"
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
