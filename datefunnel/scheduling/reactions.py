# datefunnel/scheduling/reactions.py
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from datefunnel.scheduling import guards
from datefunnel.scheduling.errors import SchedulingConflict, SchedulingValidationError
from datefunnel.scheduling.readiness import ProposalReadiness
from datefunnel.scheduling.types import (
    DateProposal,
    DateReaction,
    DateReactionType,
    Locked,
    TripSnapshot,
)

DATE_ADJUSTMENT_DAYS = 7


@dataclass(frozen=True)
class DateAdjustment:
    start_date: date
    end_date: date
    label: str


def required_approvals(total_members: int) -> int:
    """WORKS reactions needed to lock: majority of active members, at least 1."""
    if total_members <= 0:
        return 1
    return math.ceil(total_members / 2)


def count_approvals(
    reactions: Iterable[DateReaction],
    member_ids: Optional[Iterable[str]] = None,
) -> int:
    """
    Distinct users with a WORKS reaction. When `member_ids` is given, only
    reactions from those users count (someone who left the trip no longer
    approves). CAVEAT and CANT never count.
    """
    members = set(member_ids) if member_ids is not None else None
    approvers = {
        r.user_id for r in reactions
        if r.reaction_type == DateReactionType.WORKS
        and (members is None or r.user_id in members)
    }
    return len(approvers)


def is_lock_eligible(
    trip: TripSnapshot,
    member_count: int,
    member_ids: Optional[Iterable[str]] = None,
) -> bool:
    if trip.date_proposal is None:
        return False
    return count_approvals(trip.date_reactions, member_ids) >= required_approvals(member_count)


def propose_dates(
    trip: TripSnapshot,
    *,
    actor_id: str,
    start_date: date,
    end_date: date,
    now: datetime,
    readiness: Optional[ProposalReadiness] = None,
    note: Optional[str] = None,
    replace_existing: bool = False,
) -> TripSnapshot:
    """
    Leader puts a concrete date range forward.

    Behavior:
    - only one live proposal; a second one needs `replace_existing`
    - replacing drops every reaction (they were about other dates)
    - when `readiness` is given, the leader needs organic readiness or an
      explicit override on it

    Returns the trip with the new proposal; window proposals are frozen
    from here on.
    """
    guards.ensure_action_allowed(trip, guards.PROPOSE_DATES, actor_id)

    if start_date > end_date:
        raise SchedulingValidationError(
            f"startDate ({start_date.isoformat()}) must be <= endDate ({end_date.isoformat()})"
        )

    if trip.date_proposal is not None and not replace_existing:
        raise SchedulingConflict(
            "Dates are already proposed; replace the current proposal instead",
            code="PROPOSAL_EXISTS",
        )

    if readiness is not None and not readiness.can_propose:
        raise SchedulingConflict(
            f"The leading window needs {readiness.stats.threshold_needed} supporters "
            f"(has {readiness.leader_count}); propose anyway with a leader override",
            code="THRESHOLD_NOT_MET",
        )

    proposal = DateProposal(
        start_date=start_date,
        end_date=end_date,
        proposed_by=actor_id,
        proposed_at=now,
        note=note,
    )
    return replace(trip, date_proposal=proposal, date_reactions=())


def record_reaction(
    trip: TripSnapshot,
    *,
    user_id: str,
    reaction_type: DateReactionType,
    note: Optional[str] = None,
) -> Tuple[DateReaction, ...]:
    """Upsert the user's reaction to the current proposal; latest wins."""
    guards.ensure_action_allowed(trip, guards.REACT_TO_DATES, user_id)

    if trip.date_proposal is None:
        raise SchedulingConflict("There are no proposed dates to react to", code="NO_DATE_PROPOSAL")

    reaction = DateReaction(
        user_id=user_id,
        reaction_type=DateReactionType(reaction_type),
        note=note,
    )
    kept = tuple(r for r in trip.date_reactions if r.user_id != user_id)
    return kept + (reaction,)


def lock_dates(
    trip: TripSnapshot,
    *,
    actor_id: str,
    member_ids: Iterable[str],
    leader_override: bool = False,
) -> TripSnapshot:
    """
    Turn the active proposal into locked dates.

    Needs approvals >= required_approvals(members) unless the leader
    explicitly overrides. The proposal and reactions are kept as history.
    """
    guards.ensure_action_allowed(trip, guards.LOCK_DATES, actor_id)

    proposal = trip.date_proposal
    if proposal is None:
        raise SchedulingConflict("Propose dates before locking", code="NO_DATE_PROPOSAL")

    members = list(member_ids)
    approvals = count_approvals(trip.date_reactions, members)
    needed = required_approvals(len(members))
    if approvals < needed and not leader_override:
        raise SchedulingConflict(
            f"Locking needs {needed} approvals (has {approvals})",
            code="THRESHOLD_NOT_MET",
        )

    return replace(trip, stage=Locked(start_date=proposal.start_date, end_date=proposal.end_date))


def suggest_date_adjustments(
    proposal: Optional[DateProposal],
    shift_days: int = DATE_ADJUSTMENT_DAYS,
) -> List[DateAdjustment]:
    """
    Two mechanical alternates: the same-length range a week earlier and a
    week later. No scoring; a conversation starter when consensus stalls.
    """
    if proposal is None:
        return []

    duration = proposal.end_date - proposal.start_date
    shift = timedelta(days=shift_days)
    earlier = proposal.start_date - shift
    later = proposal.start_date + shift
    weeks = "1 week" if shift_days == 7 else f"{shift_days} days"
    return [
        DateAdjustment(earlier, earlier + duration, f"{weeks} earlier"),
        DateAdjustment(later, later + duration, f"{weeks} later"),
    ]


def get_user_date_reaction(trip: TripSnapshot, user_id: str) -> Optional[DateReaction]:
    for reaction in trip.date_reactions:
        if reaction.user_id == user_id:
            return reaction
    return None


def has_user_reacted(trip: TripSnapshot, user_id: str) -> bool:
    return get_user_date_reaction(trip, user_id) is not None
