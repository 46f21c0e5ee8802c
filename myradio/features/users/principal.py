"""
Principals and their permission sets.

A Principal is the durable part of a signed-in member: profile fields and the
set of permission types currently held. It carries no database handle, so the
cached JSON form is complete; sessions are acquired per use through get_db.

A role (officership) counts as held only if
    from_date < now - grace  AND  (till_date IS NULL OR till_date > now - grace)
with grace = ROLE_GRACE_MONTHS calendar months. Both the grant and the
revocation of an officership's permissions therefore lag by one grace period.
"""
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core import config
from myradio.core.cache import CacheStore
from myradio.core.exceptions import PrincipalNotFound
from myradio.features.users.models import AuthOfficer, Member, MemberOfficer
from myradio.utils import get_logger, months_before, utcnow


log = get_logger(__name__)


class Principal(BaseModel):
    """
    An authenticated member and the permission types they hold.

    Use Principal.anonymous() for requests without a session member.
    """
    member_id: Optional[int] = None
    fname: str = ""
    sname: str = ""
    email: Optional[str] = None
    college: Optional[str] = None
    phone: Optional[str] = None
    receive_email: bool = False
    local_name: Optional[str] = None
    account_locked: bool = False
    permissions: frozenset[int] = frozenset()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return self.member_id is None

    @property
    def name(self) -> str:
        return f"{self.fname} {self.sname}".strip()

    def holds(self, type_id: int) -> bool:
        """Whether this principal currently holds the permission type."""
        return type_id in self.permissions


async def derive_permissions(
    db: AsyncSession,
    member_id: int,
    now: Optional[datetime] = None,
    grace_months: Optional[int] = None,
) -> frozenset[int]:
    """
    Compute the permission types granted by a member's current officerships.
    """
    now = now or utcnow()
    cutoff = months_before(now, config.ROLE_GRACE_MONTHS if grace_months is None else grace_months)

    current_officerships = select(MemberOfficer.officerid).where(
        MemberOfficer.memberid == member_id,
        MemberOfficer.from_date < cutoff,
        or_(MemberOfficer.till_date.is_(None), MemberOfficer.till_date > cutoff),
    )
    result = await db.execute(
        select(AuthOfficer.lookupid).where(AuthOfficer.officerid.in_(current_officerships)).distinct()
    )
    return frozenset(result.scalars().all())


class PrincipalStore:
    """
    Loads principals and memoizes them in the cache store.

    Entries live for PRINCIPAL_CACHE_TTL seconds. A principal is computed in full
    and then written with a single set, so readers never see a partial
    permission set; concurrent loads of the same member write identical values.
    """

    KEY = "MyRadioUser_{member_id}"

    def __init__(
        self,
        cache: CacheStore,
        ttl: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.ttl = config.PRINCIPAL_CACHE_TTL if ttl is None else ttl
        self.clock = clock

    def _key(self, member_id: int) -> str:
        return self.KEY.format(member_id=member_id)

    async def get(self, db: AsyncSession, member_id: int) -> Principal:
        """Return the cached principal, loading it on a miss."""
        cached = await self.cache.get(self._key(member_id))
        if cached is not None:
            log.debug("Cache hit for member %d", member_id)
            return Principal.model_validate_json(cached)
        return await self.reload(db, member_id)

    async def reload(self, db: AsyncSession, member_id: int) -> Principal:
        """
        Re-derive a principal from the store and republish it.

        Raises:
            PrincipalNotFound: if the member does not exist.
        """
        member = (
            await db.execute(select(Member).where(Member.memberid == member_id))
        ).scalar_one_or_none()
        if member is None:
            raise PrincipalNotFound(member_id=member_id)

        permissions = await derive_permissions(db, member_id, now=self.clock())
        principal = Principal(
            member_id=member.memberid,
            fname=member.fname,
            sname=member.sname,
            email=member.email,
            college=member.college,
            phone=member.phone,
            receive_email=member.receive_email,
            local_name=member.local_name,
            account_locked=member.account_locked,
            permissions=permissions,
        )
        await self.cache.set(self._key(member_id), principal.model_dump_json(), self.ttl)
        log.debug("Loaded member %d with %d permissions", member_id, len(permissions))
        return principal

    async def invalidate(self, member_id: int) -> None:
        await self.cache.delete(self._key(member_id))
