"""
Resolve free-text owner names from the source to target accounts.

Source rows name their business-development owner ("BDM") as typed by
people, so names come with extra surnames, initials or as bare numbers.
Matching runs a fixed chain of strategies against a snapshot of the BD
accounts; an unmatched name may auto-create a placeholder account.
"""

import asyncio
import enum
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.errors import NoSupervisorError
from leadsync.models import Account, AccountRole, Team
from leadsync.security import hash_password

logger = logging.getLogger(__name__)
settings = get_settings()

MIN_TOKEN_LENGTH = 3
DEFAULT_TEAM_NAME = "Default Team"


class MatchStrategy(str, enum.Enum):
    """How an owner name was resolved."""

    EXACT = "exact"
    CONTAINS = "contains"
    FIRST_TOKEN = "first_token"
    CREATED = "created"


@dataclass(frozen=True)
class KnownOwner:
    """Snapshot entry for a BD account."""

    account_id: int
    name: str
    territory: str | None

    @property
    def normalized(self) -> str:
        return normalize_name(self.name)


@dataclass(frozen=True)
class ResolvedOwner:
    account_id: int
    territory: str | None
    strategy: MatchStrategy


def normalize_name(name: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(name.split()).lower()


def match_exact(name: str, owners: Sequence[KnownOwner]) -> KnownOwner | None:
    wanted = normalize_name(name)
    for owner in owners:
        if owner.normalized == wanted:
            return owner
    return None


def match_contains(name: str, owners: Sequence[KnownOwner]) -> KnownOwner | None:
    """Raw name contains an account's full name ("Ravi Kumar Singh" -> "Ravi Kumar")."""
    wanted = normalize_name(name)
    best: KnownOwner | None = None
    for owner in owners:
        candidate = owner.normalized
        if len(candidate) < MIN_TOKEN_LENGTH or candidate not in wanted:
            continue
        # Longest contained name wins; snapshot order (lowest id) breaks ties
        if best is None or len(candidate) > len(best.normalized):
            best = owner
    return best


def match_first_token(name: str, owners: Sequence[KnownOwner]) -> KnownOwner | None:
    """An account name starts with the raw first name ("Ravi" -> "Ravi Kumar", "Ravindra Singh")."""
    tokens = normalize_name(name).split()
    if not tokens or len(tokens[0]) < MIN_TOKEN_LENGTH:
        return None
    for owner in owners:
        if owner.normalized.startswith(tokens[0]):
            return owner
    return None


MATCH_CHAIN: tuple[tuple[MatchStrategy, Callable[[str, Sequence[KnownOwner]], KnownOwner | None]], ...] = (
    (MatchStrategy.EXACT, match_exact),
    (MatchStrategy.CONTAINS, match_contains),
    (MatchStrategy.FIRST_TOKEN, match_first_token),
)


def candidate_names(raw_name: str) -> list[str]:
    """Names to try for a raw BDM value; bare numbers are also tried as BD-<n>."""
    name = " ".join(raw_name.split())
    if name.isdigit():
        return [name, f"BD-{name}"]
    return [name]


def match_owner(raw_name: str, owners: Sequence[KnownOwner]) -> ResolvedOwner | None:
    """Run the strategy chain over the snapshot; first hit wins."""
    for strategy, matcher in MATCH_CHAIN:
        for name in candidate_names(raw_name):
            owner = matcher(name, owners)
            if owner is not None:
                return ResolvedOwner(owner.account_id, owner.territory, strategy)
    return None


def login_slug(name: str) -> str:
    """Lowercase, whitespace to dots, everything else outside [a-z0-9.] dropped."""
    slug = re.sub(r"\s+", ".", name.strip().lower())
    slug = re.sub(r"[^a-z0-9.]", "", slug)
    slug = re.sub(r"\.{2,}", ".", slug).strip(".")
    return slug or "owner"


class OwnerResolver:
    """
    Per-run owner resolver with a name cache.

    Resolution happens under one lock, so concurrent workers asking for
    the same unknown name create exactly one account. Only the locked
    create path touches the database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        auto_create: bool = settings.auto_create_owners,
        login_domain: str = settings.owner_login_domain,
        placeholder_password: str = settings.owner_placeholder_password,
        default_circle: str = settings.default_circle,
    ):
        self.db = db
        self.auto_create = auto_create
        self.login_domain = login_domain
        self.placeholder_password = placeholder_password
        self.default_circle = default_circle

        self._owners: list[KnownOwner] | None = None
        self._cache: dict[str, ResolvedOwner | None] = {}
        self._lock = asyncio.Lock()
        self._password_hash: str | None = None
        self.created_accounts: list[int] = []

    async def load_snapshot(self) -> list[KnownOwner]:
        """Load every BD account with its team's circle, lowest id first."""
        result = await self.db.execute(
            select(Account.id, Account.name, Team.circle)
            .outerjoin(Team, Account.team_id == Team.id)
            .where(Account.role == AccountRole.BD.value)
            .order_by(Account.id)
        )
        self._owners = [
            KnownOwner(account_id=row.id, name=row.name, territory=row.circle)
            for row in result
        ]
        logger.info(f"Loaded {len(self._owners)} owner accounts")
        return self._owners

    async def resolve(self, raw_name: str) -> ResolvedOwner | None:
        """
        Resolve a raw owner name.

        Returns:
            The resolved owner, or None when nothing matched and auto-create
            is disabled

        Raises:
            NoSupervisorError: A placeholder account needs a default team and
                no sales head exists
        """
        key = normalize_name(raw_name)
        if key in self._cache:
            return self._cache[key]

        async with self._lock:
            if key in self._cache:
                return self._cache[key]

            if self._owners is None:
                await self.load_snapshot()

            resolved = match_owner(raw_name, self._owners)
            if resolved is None and self.auto_create:
                resolved = await self._create_owner(candidate_names(raw_name)[-1])
            elif resolved is not None and resolved.strategy is not MatchStrategy.EXACT:
                logger.debug(f"Owner '{raw_name}' matched by {resolved.strategy.value}")

            self._cache[key] = resolved
            return resolved

    async def _create_owner(self, name: str) -> ResolvedOwner:
        team = await self._default_team()
        email = await self._free_login(name)

        if self._password_hash is None:
            self._password_hash = hash_password(self.placeholder_password)

        account = Account(
            name=name,
            email=email,
            password_hash=self._password_hash,
            role=AccountRole.BD.value,
            team_id=team.id,
        )
        self.db.add(account)
        await self.db.flush()
        owner = KnownOwner(account_id=account.id, name=name, territory=team.circle)
        team_name = team.name
        await self.db.commit()

        self._owners.append(owner)
        self.created_accounts.append(owner.account_id)
        logger.info(f"Created owner account {email} for '{name}' in team {team_name}")
        return ResolvedOwner(owner.account_id, owner.territory, MatchStrategy.CREATED)

    async def _default_team(self) -> Team:
        """First team by id, or a new default team under the first sales head."""
        result = await self.db.execute(select(Team).order_by(Team.id).limit(1))
        team = result.scalar_one_or_none()
        if team is not None:
            return team

        result = await self.db.execute(
            select(Account)
            .where(Account.role == AccountRole.SALES_HEAD.value)
            .order_by(Account.id)
            .limit(1)
        )
        sales_head = result.scalar_one_or_none()
        if sales_head is None:
            raise NoSupervisorError(
                "No team exists and no sales head is available to own a default team"
            )

        team = Team(
            name=DEFAULT_TEAM_NAME,
            circle=self.default_circle,
            sales_head_id=sales_head.id,
        )
        self.db.add(team)
        await self.db.flush()
        logger.info(f"Created {DEFAULT_TEAM_NAME} ({self.default_circle}) under {sales_head.email}")
        return team

    async def _free_login(self, name: str) -> str:
        base = login_slug(name)
        result = await self.db.execute(
            select(Account.email).where(Account.email.like(f"{base}%@{self.login_domain}"))
        )
        taken = set(result.scalars().all())

        email = f"{base}@{self.login_domain}"
        counter = 1
        while email in taken:
            email = f"{base}{counter}@{self.login_domain}"
            counter += 1
        return email
