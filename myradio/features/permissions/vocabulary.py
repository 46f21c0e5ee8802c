"""
Permission vocabulary: the process-wide table of permission types.

Loaded from l_action exactly once per process and immutable afterwards. Handlers
and the dispatcher receive it explicitly instead of reading global constants.
"""
import asyncio
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myradio.core.exceptions import UnknownPermission
from myradio.features.permissions.models import PermissionType
from myradio.utils import get_logger


log = get_logger(__name__)


class PermissionVocabulary:
    """
    Immutable lookup table between permission type ids and symbolic names.

    Example:
        vocabulary = PermissionVocabulary({269: "AUTH_SHOWERRORS"})
        vocabulary.type_id("AUTH_SHOWERRORS")  # 269
        vocabulary.symbol(269)                 # "AUTH_SHOWERRORS"
    """

    def __init__(self, entries: Mapping[int, str]):
        self._by_id = MappingProxyType(dict(entries))
        self._by_symbol = MappingProxyType({symbol: type_id for type_id, symbol in entries.items()})

    def type_id(self, symbol: str) -> int:
        try:
            return self._by_symbol[symbol]
        except KeyError:
            raise UnknownPermission(f"Permission {symbol} is not defined", symbol=symbol) from None

    def symbol(self, type_id: int) -> str:
        try:
            return self._by_id[type_id]
        except KeyError:
            raise UnknownPermission(f"Permission type {type_id} is not defined", type_id=type_id) from None

    def __contains__(self, item: object) -> bool:
        return item in self._by_symbol or item in self._by_id

    def __iter__(self) -> Iterator[tuple[int, str]]:
        return iter(self._by_id.items())

    def __len__(self) -> int:
        return len(self._by_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionVocabulary):
            return NotImplemented
        return dict(self._by_id) == dict(other._by_id)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<PermissionVocabulary({len(self)} types)>"


class VocabularyLoader:
    """
    Guarded one-time initialisation of the PermissionVocabulary.

    Concurrent first calls wait on the lock; exactly one of them reads the store
    and the finished table is published in a single assignment.
    """

    def __init__(self):
        self._vocabulary: PermissionVocabulary | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._vocabulary is not None

    @property
    def vocabulary(self) -> PermissionVocabulary:
        if self._vocabulary is None:
            raise RuntimeError("Permission vocabulary has not been loaded yet")
        return self._vocabulary

    async def ensure_loaded(self, db: AsyncSession) -> PermissionVocabulary:
        if self._vocabulary is not None:
            return self._vocabulary

        async with self._lock:
            if self._vocabulary is None:
                result = await db.execute(select(PermissionType.typeid, PermissionType.phpconstant))
                vocabulary = PermissionVocabulary({row.typeid: row.phpconstant for row in result})
                self._vocabulary = vocabulary
                if vocabulary:
                    log.info("Loaded permission vocabulary with %d types", len(vocabulary))
                else:
                    log.warning(
                        "Loaded an empty permission vocabulary; run scripts.seed_permissions "
                        "and restart, or permission checks will fail"
                    )

        return self._vocabulary
