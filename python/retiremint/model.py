"""Scenario data model.

Plain frozen dataclasses describing a scenario as the resolver consumes it.
All values are built once from a scenario definition and never mutated;
a Monte Carlo driver can share one :class:`Scenario` across every trial.

Allocations exist in two shapes:

- **Flat** (``dict[str, float]``): investment *name* -> fraction of total
  capital in [0, 1]. This is the exchange-file form.
- **Nested** (:class:`NestedAllocation`): tax status -> percentage, then per
  tax status investment *id* -> percentage of that status's capital.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# investment name -> fraction of total capital
FlatAllocation = dict[str, float]


class TaxStatus(Enum):
    """Tax treatment of an investment account."""

    NON_RETIREMENT = "non-retirement"
    PRE_TAX = "pre-tax"
    AFTER_TAX = "after-tax"
    TAX_EXEMPT = "tax-exempt"


class EventType(Enum):
    """Kinds of event series."""

    INCOME = "income"
    EXPENSE = "expense"
    INVEST = "invest"
    REBALANCE = "rebalance"

    @property
    def has_allocation(self) -> bool:
        """Whether events of this type carry an asset allocation."""
        return self in (EventType.INVEST, EventType.REBALANCE)


@dataclass(frozen=True)
class Investment:
    """An investment held in the scenario.

    Attributes:
        id: Stable identifier used inside nested allocations.
        name: Display name, unique within the scenario; the key used by
            flat allocations.
        tax_status: Account tax treatment.
        value: Current market value.
        investment_type: Name of the investment type (e.g. "S&P 500").

    """

    id: str
    name: str
    tax_status: TaxStatus
    value: float = 0.0
    investment_type: str = ""

    def __post_init__(self) -> None:
        """Reject negative values."""
        if self.value < 0:
            msg = f"Investment '{self.name}' has negative value {self.value}"
            raise ValueError(msg)


@dataclass(frozen=True)
class NestedAllocation:
    """Two-level allocation: tax status first, then investment within status.

    Attributes:
        tax_status: Percentage (0-100) of capital per tax status.
        within_status: Per tax status, investment id -> percentage (0-100)
            of that status's capital.

    """

    tax_status: dict[TaxStatus, float] = field(default_factory=dict)
    within_status: dict[TaxStatus, dict[str, float]] = field(default_factory=dict)

    def status_percent(self, status: TaxStatus) -> float:
        """Top-level percentage for ``status`` (0 when absent)."""
        return self.tax_status.get(status, 0.0)

    def within(self, status: TaxStatus) -> dict[str, float]:
        """Within-status map for ``status`` (empty when absent)."""
        return self.within_status.get(status, {})

    def is_empty(self) -> bool:
        """True when no status carries a positive percentage."""
        return not any(pct > 0 for pct in self.tax_status.values())


@dataclass(frozen=True)
class Fixed:
    """A constant value."""

    value: float


@dataclass(frozen=True)
class Normal:
    """A normally distributed value."""

    mean: float
    sd: float


@dataclass(frozen=True)
class Uniform:
    """A uniformly distributed value on ``[low, high]``."""

    low: float
    high: float


Distribution = Fixed | Normal | Uniform


@dataclass(frozen=True)
class SameYearAs:
    """Start in the same year as another event series starts."""

    event: str


@dataclass(frozen=True)
class YearAfterEnd:
    """Start the year after another event series ends."""

    event: str


StartSpec = Fixed | Normal | Uniform | SameYearAs | YearAfterEnd
DurationSpec = Distribution


@dataclass(frozen=True)
class CashFlowPayload:
    """Income or expense details.

    Attributes:
        initial_amount: First-year amount.
        change_distribution: Expected annual change, or None for no change.
        change_is_percent: Whether the change is a percentage (else dollars).
        inflation_adjusted: Whether amounts grow with inflation.
        user_fraction: Share attributable to the user in a couple scenario.
        social_security: Income only; marks social security income.
        discretionary: Expense only; marks a discretionary expense.

    """

    initial_amount: float = 0.0
    change_distribution: Distribution | None = None
    change_is_percent: bool = True
    inflation_adjusted: bool = False
    user_fraction: float = 1.0
    social_security: bool = False
    discretionary: bool = False


@dataclass(frozen=True)
class AllocationPayload:
    """Invest or rebalance details.

    Attributes:
        allocation: Initial flat allocation (investment name -> fraction).
        final_allocation: Glide-path target flat allocation, if any.
        glide_path: Whether the allocation drifts from ``allocation`` to
            ``final_allocation`` over the event's duration.
        max_cash: Invest only; cash ceiling above which excess is invested.

    """

    allocation: FlatAllocation = field(default_factory=dict)
    final_allocation: FlatAllocation | None = None
    glide_path: bool = False
    max_cash: float | None = None


@dataclass(frozen=True)
class EventSeries:
    """A named, possibly recurring, financial event.

    Attributes:
        name: Unique name; the join key for relative start years.
        event_type: Income, expense, invest or rebalance.
        start: How the start year is determined.
        duration: How many years the event lasts.
        payload: Type-specific details.
        description: Free text.

    """

    name: str
    event_type: EventType
    start: StartSpec
    duration: DurationSpec
    payload: CashFlowPayload | AllocationPayload | None = None
    description: str = ""

    @property
    def reference(self) -> str | None:
        """Name of the event this one starts relative to, if any."""
        if isinstance(self.start, SameYearAs | YearAfterEnd):
            return self.start.event
        return None


@dataclass(frozen=True)
class Scenario:
    """A complete scenario definition, shared read-only across trials.

    Attributes:
        name: Scenario name.
        investments: Investments held, excluding cash.
        events: Event series in declaration order.
        initial_cash: Starting cash balance.
        seed: Optional seed for reproducible trial streams.

    """

    name: str
    investments: tuple[Investment, ...] = ()
    events: tuple[EventSeries, ...] = ()
    initial_cash: float = 0.0
    seed: int | None = None

    def investments_by_id(self) -> dict[str, Investment]:
        """Lookup table keyed by investment id."""
        return {inv.id: inv for inv in self.investments}

    def investments_by_name(self) -> dict[str, Investment]:
        """Lookup table keyed by investment name."""
        return {inv.name: inv for inv in self.investments}
