"""
Declarative base shared by the permission and member tables.
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Every table model inherits from this; init_db creates them all.

    Table and column names follow the existing MyRadio schema (act_permission,
    l_action, member_officer, ...) rather than Python naming.
    """
    pass
