"""Scoped edit/delete planning for occurrences of recurring and installment series.

The resolver only decides; it never touches the database. A ``MutationPlan``
names the change to the selected occurrence, the change to the parent series,
and a ``BulkPredicate`` for the sibling rows. Bulk predicates always filter on
``status = pending``, so a confirmed occurrence can only ever be changed through
a ``this_only`` request on that occurrence itself.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional, Union

from errors import ConsistencyViolation, InvalidInput
from models import (
    InstallmentGroup,
    MutationScope,
    Recurrence,
    SeriesKind,
    Transaction,
    TransactionStatus,
)
from store import BulkPredicate


EDITABLE_FIELDS = frozenset(
    {
        "description",
        "amount_cents",
        "category_id",
        "due_date",
        "account_id",
        "credit_card_id",
        "notes",
    }
)
RECURRENCE_TEMPLATE_FIELDS = ("amount_cents", "category_id", "description")
INSTALLMENT_PROPAGATED_FIELDS = ("amount_cents", "category_id")


class MutationAction(str, Enum):
    edit = "edit"
    delete = "delete"


@dataclass(frozen=True)
class MutationPlan:
    action: MutationAction
    occurrence_id: int
    scope: MutationScope
    this_update: Optional[dict] = None
    delete_this: bool = False
    series_kind: Optional[SeriesKind] = None
    series_id: Optional[int] = None
    series_update: Optional[dict] = None
    bulk_predicate: Optional[BulkPredicate] = None
    bulk_values: Optional[dict] = None


Series = Union[Recurrence, InstallmentGroup, None]


def series_of(occurrence: Transaction) -> tuple[Optional[SeriesKind], Optional[int]]:
    if occurrence.recurrence_id is not None and occurrence.installment_group_id is not None:
        raise ConsistencyViolation(
            f"Occurrence {occurrence.id} claims both a recurrence and an installment group"
        )
    if occurrence.recurrence_id is not None:
        return SeriesKind.recurrence, occurrence.recurrence_id
    if occurrence.installment_group_id is not None:
        return SeriesKind.installment, occurrence.installment_group_id
    if occurrence.installment_number is not None:
        raise ConsistencyViolation(
            f"Occurrence {occurrence.id} has an installment number without a group"
        )
    return None, None


def _check_series(
    occurrence: Transaction,
    kind: Optional[SeriesKind],
    series_id: Optional[int],
    series: Series,
) -> None:
    if series is None:
        return
    if kind is None:
        raise ConsistencyViolation(f"Occurrence {occurrence.id} is not part of a series")
    expected = Recurrence if kind == SeriesKind.recurrence else InstallmentGroup
    if not isinstance(series, expected) or series.id != series_id:
        raise ConsistencyViolation(
            f"Series does not match occurrence {occurrence.id}"
        )
    if kind == SeriesKind.installment:
        number = occurrence.installment_number
        if number is None or not (
            series.starting_installment <= number <= series.total_installments
        ):
            raise ConsistencyViolation(
                f"Installment number {number} is outside "
                f"{series.starting_installment}..{series.total_installments}"
            )


def _validate_changes(changes: dict) -> dict:
    if not changes:
        raise InvalidInput("No changes supplied")
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise InvalidInput(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
    if "amount_cents" in changes:
        amount = changes["amount_cents"]
        if amount is None or amount <= 0:
            raise InvalidInput("Amount must be positive")
    if "description" in changes and not changes["description"]:
        raise InvalidInput("Description cannot be empty")
    if "due_date" in changes and changes["due_date"] is None:
        raise InvalidInput("Due date cannot be empty")
    return dict(changes)


def _reject_confirmed(occurrence: Transaction) -> None:
    if occurrence.status == TransactionStatus.confirmed:
        raise ConsistencyViolation(
            f"Occurrence {occurrence.id} is confirmed; only this occurrence can be changed"
        )


def resolve_edit(
    occurrence: Transaction,
    series: Series,
    scope: MutationScope,
    changes: dict,
) -> MutationPlan:
    values = _validate_changes(changes)
    kind, series_id = series_of(occurrence)
    _check_series(occurrence, kind, series_id, series)
    base = dict(
        action=MutationAction.edit,
        occurrence_id=occurrence.id,
        scope=scope,
        series_kind=kind,
        series_id=series_id,
    )

    if kind is None:
        return MutationPlan(this_update=values, **base)

    if scope == MutationScope.this_only:
        if kind == SeriesKind.recurrence:
            values.update(recurrence_id=None, is_recurring=False)
        return MutationPlan(this_update=values, **base)

    _reject_confirmed(occurrence)
    if kind == SeriesKind.recurrence:
        template = {f: values[f] for f in RECURRENCE_TEMPLATE_FIELDS if f in values}
        if not template:
            return MutationPlan(this_update=values, **base)
        return MutationPlan(
            this_update=values,
            series_update=template,
            bulk_predicate=BulkPredicate(
                SeriesKind.recurrence,
                series_id,
                due_date_after=occurrence.due_date,
            ),
            bulk_values=template,
            **base,
        )

    propagated = {f: values[f] for f in INSTALLMENT_PROPAGATED_FIELDS if f in values}
    if not propagated:
        return MutationPlan(this_update=values, **base)
    series_update: dict[str, object] = {}
    if "amount_cents" in propagated:
        series_update["installment_amount_cents"] = propagated["amount_cents"]
    if "category_id" in propagated:
        series_update["category_id"] = propagated["category_id"]
    return MutationPlan(
        this_update=values,
        series_update=series_update,
        bulk_predicate=BulkPredicate(
            SeriesKind.installment,
            series_id,
            installment_number_from=occurrence.installment_number,
        ),
        bulk_values=propagated,
        **base,
    )


def resolve_delete(
    occurrence: Transaction,
    series: Series,
    scope: MutationScope,
) -> MutationPlan:
    kind, series_id = series_of(occurrence)
    _check_series(occurrence, kind, series_id, series)
    base = dict(
        action=MutationAction.delete,
        occurrence_id=occurrence.id,
        scope=scope,
        series_kind=kind,
        series_id=series_id,
    )

    if kind is None or scope == MutationScope.this_only:
        return MutationPlan(delete_this=True, **base)

    _reject_confirmed(occurrence)
    if kind == SeriesKind.recurrence:
        return MutationPlan(
            series_update={
                "end_date": occurrence.due_date - timedelta(days=1),
                "is_active": False,
            },
            bulk_predicate=BulkPredicate(
                SeriesKind.recurrence,
                series_id,
                due_date_from=occurrence.due_date,
            ),
            **base,
        )
    return MutationPlan(
        bulk_predicate=BulkPredicate(
            SeriesKind.installment,
            series_id,
            installment_number_from=occurrence.installment_number,
        ),
        **base,
    )
