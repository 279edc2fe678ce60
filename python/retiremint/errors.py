"""Fatal errors raised while resolving a scenario into a trial plan.

Every error here means the scenario definition itself cannot be resolved:
any trial would fail the same way, so a Monte Carlo driver should stop on
the first one instead of retrying. Recoverable data problems are reported
as :class:`retiremint.diagnostics.ResolutionWarning` values instead.

"""

from __future__ import annotations

from collections.abc import Sequence


class ResolutionError(ValueError):
    """Base class for scenario-level resolution failures."""

    scenario_level = True


class CyclicDependencyError(ResolutionError):
    """Event start references form a cycle.

    Attributes:
        cycle_nodes: Names of the events on the cycle, in reference order.

    """

    def __init__(self, cycle_nodes: Sequence[str]) -> None:
        self.cycle_nodes = list(cycle_nodes)
        chain = " -> ".join([*self.cycle_nodes, self.cycle_nodes[0]])
        super().__init__(f"Circular start-year dependency: {chain}")


class UnresolvedReferenceError(ResolutionError):
    """An event starts relative to an event that does not exist or is unresolved."""

    def __init__(self, event_name: str, reference: str) -> None:
        self.event_name = event_name
        self.reference = reference
        super().__init__(
            f"Event '{event_name}' references unknown or unresolved event "
            f"'{reference}'"
        )


class DuplicateNameError(ResolutionError):
    """Two or more event series share a name."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(f"Duplicate event series names: {self.names}")


class InvalidDurationError(ResolutionError):
    """A duration can never be at least one year."""

    def __init__(self, duration: float, subject: str = "") -> None:
        self.duration = duration
        self.subject = subject
        where = f" for '{subject}'" if subject else ""
        super().__init__(f"Invalid duration{where}: {duration} (must be > 0)")


class InvalidDistributionError(ResolutionError):
    """Distribution parameters are malformed (negative sd, low > high).

    Attributes:
        distribution: The offending distribution.
        problem: What is wrong with its parameters.
        subject: Event the distribution belongs to, if known.

    """

    def __init__(self, distribution: object, problem: str, subject: str = "") -> None:
        self.distribution = distribution
        self.problem = problem
        self.subject = subject
        where = f" for '{subject}'" if subject else ""
        super().__init__(f"Invalid distribution{where}: {problem}")


class AllocationSumError(ResolutionError):
    """A resolved allocation breaks the 100% invariant.

    Attributes:
        subject: Event the allocation belongs to.
        problems: Human readable description of each failing map.

    """

    def __init__(self, subject: str, problems: Sequence[str]) -> None:
        self.subject = subject
        self.problems = list(problems)
        super().__init__(
            f"Allocation for '{subject}' does not sum to 100%: "
            + "; ".join(self.problems)
        )
