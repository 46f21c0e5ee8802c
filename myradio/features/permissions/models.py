"""
Service, Module, Action and permission rule models.

The rule table associates an optional module, optional action and optional
permission type with a service:
- moduleid NULL  -> applies to every module of the service
- actionid NULL  -> applies to every action of the module
- typeid NULL    -> no permission required (global access)

Rows with (moduleid NULL AND typeid NULL) or (actionid NULL AND typeid NULL) are
join artifacts and never take part in rule resolution.
"""
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from myradio.core.database.base import Base


class Service(Base):
    """
    A deployable web service (e.g. MyRadio) owning a set of modules.
    """
    __tablename__ = "services"

    serviceid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Service(id={self.serviceid}, name={self.name!r})>"


class ServiceVersion(Base):
    """
    A released version lineage of a service.

    A controller binding is only routable if it exists in every version listed here.
    """
    __tablename__ = "services_versions"

    serviceversionid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    serviceid: Mapped[int] = mapped_column(ForeignKey("services.serviceid", ondelete="CASCADE"), nullable=False)
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<ServiceVersion(id={self.serviceversionid}, version={self.version!r})>"


class Module(Base):
    """
    A named namespace of actions. Created on first reference, never deleted.
    """
    __tablename__ = "modules"
    __table_args__ = (UniqueConstraint("serviceid", "name"),)

    moduleid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    serviceid: Mapped[int] = mapped_column(ForeignKey("services.serviceid", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Module(id={self.moduleid}, name={self.name!r})>"


class Action(Base):
    """
    A named endpoint inside a module. Created on first reference, never deleted.
    """
    __tablename__ = "actions"
    __table_args__ = (UniqueConstraint("moduleid", "name"),)

    actionid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    moduleid: Mapped[int] = mapped_column(ForeignKey("modules.moduleid", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    custom_uri: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Action(id={self.actionid}, module={self.moduleid}, name={self.name!r})>"


class PermissionType(Base):
    """
    A permission type: stable integer id plus its symbolic name (e.g. AUTH_LOCK).
    """
    __tablename__ = "l_action"

    typeid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    descr: Mapped[str] = mapped_column(Text, nullable=False)
    phpconstant: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<PermissionType(id={self.typeid}, symbol={self.phpconstant!r})>"


class ActionPermission(Base):
    """
    A permission rule. Administrator managed; read-only to the request gate.
    """
    __tablename__ = "act_permission"

    actpermissionid: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    serviceid: Mapped[int] = mapped_column(ForeignKey("services.serviceid", ondelete="CASCADE"), nullable=False)
    moduleid: Mapped[int | None] = mapped_column(ForeignKey("modules.moduleid", ondelete="CASCADE"), nullable=True)
    actionid: Mapped[int | None] = mapped_column(ForeignKey("actions.actionid", ondelete="CASCADE"), nullable=True)
    typeid: Mapped[int | None] = mapped_column(ForeignKey("l_action.typeid", ondelete="CASCADE"), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ActionPermission(id={self.actpermissionid}, module={self.moduleid}, "
            f"action={self.actionid}, type={self.typeid})>"
        )
