"""
Store access for member profile data.
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.features.users.models import MemberOfficer, Officer
from myradio.features.users.schemas import OfficershipEntry


async def list_officerships(db: AsyncSession, member_id: int) -> List[OfficershipEntry]:
    """Every officership of a member, past ones included, newest first."""
    stmt = (
        select(
            MemberOfficer.officerid,
            Officer.officer_name,
            MemberOfficer.from_date,
            MemberOfficer.till_date,
        )
        .join(Officer, Officer.officerid == MemberOfficer.officerid)
        .where(MemberOfficer.memberid == member_id)
        .order_by(MemberOfficer.from_date.desc(), MemberOfficer.officerid)
    )
    result = await db.execute(stmt)
    return [OfficershipEntry.model_validate(row, from_attributes=True) for row in result]
