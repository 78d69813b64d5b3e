"""
Group Registry
==============

Admission consumer for balance-gated groups.

A member is admitted only when the attestation is valid, its public
threshold covers the group minimum, its nonce has not been used before and
its proof verifies against the public inputs. Anything else leaves the
registry untouched.

Data is stored in memory and lost on restart.

Version: 0.1.0
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from zkvip.evidence import to_micro_units
from zkvip.logging import get_logger
from zkvip.zk import AttestationResult, ProofSystem


logger = get_logger(__name__)


class Group(BaseModel):
    """A balance-gated group."""

    id: str
    name: str
    description: str = ""
    min_wld: Decimal = Field(..., ge=0, description="Minimum balance in WLD")
    members: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("min_wld")
    @classmethod
    def validate_min_wld(cls, v: Decimal) -> Decimal:
        to_micro_units(v, cap=False)
        return v

    @property
    def min_micro(self) -> int:
        """Minimum balance in micro-units."""
        return to_micro_units(self.min_wld, cap=False)


class Membership(BaseModel):
    """A member admitted to a group."""

    group_id: str
    member_id: str
    threshold_micro: int
    nonce: str = Field(..., description="Hex nonce of the admitting attestation")
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class GroupEvent:
    """Change notification."""

    kind: str  # "group_created" | "member_joined"
    group_id: str
    member_id: str | None = None


GroupListener = Callable[[GroupEvent], None]


class GroupNotFoundError(LookupError):
    """No group with the given id."""


class GroupExistsError(ValueError):
    """A group with the same id already exists."""


class AdmissionDenied(Exception):
    """An attestation did not authorize the join."""

    def __init__(self, group_id: str, reason: str) -> None:
        super().__init__(f"Admission to {group_id!r} denied: {reason}")
        self.group_id = group_id
        self.reason = reason


DEFAULT_GROUPS = (
    Group(
        id="zk-builders",
        name="ZK Builders",
        description="Daily discussions about ZK, proofs and tooling.",
        min_wld=Decimal("0.5"),
        members=124,
    ),
    Group(
        id="ethereum-sp",
        name="Ethereum São Paulo",
        description="Events, meetups and grants from the São Paulo community.",
        min_wld=Decimal("1"),
        members=89,
    ),
)


def slugify(name: str) -> str:
    """Derive a group id from its name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class GroupRegistry:
    """
    In-memory group and membership store.

    Example:
        >>> registry = GroupRegistry(proof_system)
        >>> membership = await registry.admit("zk-builders", "user-1", result)
    """

    def __init__(
        self,
        verifier: ProofSystem | None = None,
        groups: Iterable[Group] | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            verifier: Proof system used to check proofs before admission
            groups: Initial groups. Defaults to DEFAULT_GROUPS.
        """
        self._verifier = verifier
        self._groups: dict[str, Group] = {}
        self._memberships: dict[tuple[str, str], Membership] = {}
        self._used_nonces: set[str] = set()
        self._listeners: list[GroupListener] = []

        for group in DEFAULT_GROUPS if groups is None else groups:
            self._groups[group.id] = group.model_copy()

    # =========================================================================
    # Groups
    # =========================================================================

    def list_groups(self) -> list[Group]:
        return list(self._groups.values())

    def get_group(self, group_id: str) -> Group:
        try:
            return self._groups[group_id]
        except KeyError:
            raise GroupNotFoundError(f"Group {group_id!r} not found") from None

    def create_group(self, name: str, description: str, min_wld: Decimal) -> Group:
        """
        Create a group whose id is derived from its name.

        Raises:
            ValueError: The name yields an empty id
            GroupExistsError: A group with that id exists
        """
        group_id = slugify(name)
        if not group_id:
            raise ValueError(f"Cannot derive a group id from {name!r}")
        if group_id in self._groups:
            raise GroupExistsError(f"A group named {name!r} already exists")

        group = Group(id=group_id, name=name, description=description, min_wld=min_wld)
        self._groups[group_id] = group

        logger.info("group_created", group_id=group_id, min_wld=str(group.min_wld))
        self._notify(GroupEvent(kind="group_created", group_id=group_id))
        return group

    # =========================================================================
    # Memberships
    # =========================================================================

    def is_member(self, group_id: str, member_id: str) -> bool:
        return (group_id, member_id) in self._memberships

    def memberships(self, member_id: str) -> list[Membership]:
        return [m for (_, mid), m in self._memberships.items() if mid == member_id]

    def _deny(self, group_id: str, member_id: str, reason: str) -> AdmissionDenied:
        logger.warning("admission_denied", group_id=group_id, member_id=member_id, reason=reason)
        return AdmissionDenied(group_id, reason)

    async def admit(
        self,
        group_id: str,
        member_id: str,
        result: AttestationResult,
    ) -> Membership:
        """
        Perform the group-join transition for a valid attestation.

        Joining a group twice returns the existing membership.

        Raises:
            GroupNotFoundError: Unknown group
            AdmissionDenied: The attestation does not authorize the join
        """
        group = self.get_group(group_id)

        existing = self._memberships.get((group_id, member_id))
        if existing is not None:
            return existing

        if not result.is_valid:
            raise self._deny(group_id, member_id, "attestation is not valid")

        public_inputs = result.public_inputs
        if public_inputs.threshold_micro < group.min_micro:
            raise self._deny(group_id, member_id, "attested threshold is below the group minimum")

        nonce = public_inputs.nonce.hex()
        if nonce in self._used_nonces:
            raise self._deny(group_id, member_id, "attestation nonce was already used")

        if self._verifier is not None:
            if not await self._verifier.verify(result.proof_bytes, public_inputs):
                raise self._deny(group_id, member_id, "proof failed verification")
            # Re-check after the await: a concurrent admit may have used it
            if nonce in self._used_nonces:
                raise self._deny(group_id, member_id, "attestation nonce was already used")

        self._used_nonces.add(nonce)
        membership = Membership(
            group_id=group_id,
            member_id=member_id,
            threshold_micro=public_inputs.threshold_micro,
            nonce=nonce,
        )
        self._memberships[(group_id, member_id)] = membership
        self._groups[group_id] = group.model_copy(update={"members": group.members + 1})

        logger.info("member_admitted", group_id=group_id, member_id=member_id)
        self._notify(GroupEvent(kind="member_joined", group_id=group_id, member_id=member_id))
        return membership

    # =========================================================================
    # Change notification
    # =========================================================================

    def subscribe(self, listener: GroupListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: GroupEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "group_listener_failed",
                    kind=event.kind,
                    group_id=event.group_id,
                    exc_info=True,
                )
