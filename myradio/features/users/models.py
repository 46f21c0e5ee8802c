"""
Member and officership models.

Permissions are not granted to members directly: a member holds officerships
(member_officer, time bounded) and each officer position carries permission
types (auth_officer).
"""
from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from myradio.core.database.base import Base


class Member(Base):
    """
    A member of the station: the principal behind a session.
    """
    __tablename__ = "member"

    memberid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    fname: Mapped[str] = mapped_column(String(255), nullable=False)
    sname: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    college: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    receive_email: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    local_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    account_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Member(id={self.memberid}, name={self.fname!r} {self.sname!r})>"


class Officer(Base):
    """An officer position (role)."""
    __tablename__ = "officer"

    officerid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    officer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Officer(id={self.officerid}, name={self.officer_name!r})>"


class MemberOfficer(Base):
    """
    A member holding an officer position between from_date and till_date.

    till_date NULL means the position is still held.
    """
    __tablename__ = "member_officer"

    member_officerid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    memberid: Mapped[int] = mapped_column(ForeignKey("member.memberid", ondelete="CASCADE"), nullable=False, index=True)
    officerid: Mapped[int] = mapped_column(ForeignKey("officer.officerid", ondelete="CASCADE"), nullable=False)
    from_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    till_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class AuthOfficer(Base):
    """A permission type carried by an officer position."""
    __tablename__ = "auth_officer"

    officerid: Mapped[int] = mapped_column(ForeignKey("officer.officerid", ondelete="CASCADE"), primary_key=True)
    lookupid: Mapped[int] = mapped_column(ForeignKey("l_action.typeid", ondelete="CASCADE"), primary_key=True)
