"""Immutable registration form state and the reducers that update it."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from typing import FrozenSet, Mapping, Optional

from .models import FIELD_NAMES, RegistrationInput
from .validation import validate_field, validate_registration

SUCCESS_BANNER_DURATION = timedelta(seconds=3)


@dataclass(frozen=True)
class FormState:
    """Values, touched flags, errors and success banner deadline of the form."""

    values: RegistrationInput = field(default_factory=RegistrationInput)
    touched: FrozenSet[str] = frozenset()
    errors: Mapping[str, str] = field(default_factory=dict)
    success_until: Optional[datetime] = None


@dataclass(frozen=True)
class SubmitOutcome:
    state: FormState
    accepted: Optional[RegistrationInput] = None

    @property
    def succeeded(self) -> bool:
        return self.accepted is not None


def _with_field_error(
    state: FormState, name: str, values: RegistrationInput, today: Optional[date]
) -> Mapping[str, str]:
    errors = dict(state.errors)
    error = validate_field(name, values.get(name), {"password": values.password}, today=today)
    if error:
        errors[name] = error
    else:
        errors.pop(name, None)
    return errors


def reset_form() -> FormState:
    return FormState()


def change_field(
    state: FormState, name: str, value: str, *, today: Optional[date] = None
) -> FormState:
    """Record a new value, revalidating it only once the field was touched."""

    values = state.values.with_value(name, value)
    if name not in state.touched:
        return replace(state, values=values)
    return replace(state, values=values, errors=_with_field_error(state, name, values, today))


def blur_field(state: FormState, name: str, *, today: Optional[date] = None) -> FormState:
    """Mark ``name`` as touched and validate its current value."""

    return replace(
        state,
        touched=state.touched | {name},
        errors=_with_field_error(state, name, state.values, today),
    )


def submit_form(
    state: FormState,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    success_duration: timedelta = SUCCESS_BANNER_DURATION,
) -> SubmitOutcome:
    """Validate every field regardless of touched state.

    On success the returned state is cleared and carries the success banner
    deadline; the accepted input is handed back for the caller to store.
    """

    errors = validate_registration(state.values, today=today)
    if errors:
        return SubmitOutcome(
            state=replace(state, touched=frozenset(FIELD_NAMES), errors=errors, success_until=None)
        )

    moment = now or datetime.now(timezone.utc)
    cleared = replace(reset_form(), success_until=moment + success_duration)
    return SubmitOutcome(state=cleared, accepted=state.values)


def visible_error(state: FormState, name: str) -> Optional[str]:
    if name not in state.touched:
        return None
    return state.errors.get(name)


def success_visible(state: FormState, now: Optional[datetime] = None) -> bool:
    if state.success_until is None:
        return False
    moment = now or datetime.now(timezone.utc)
    return moment < state.success_until


__all__ = [
    "FormState",
    "SUCCESS_BANNER_DURATION",
    "SubmitOutcome",
    "blur_field",
    "change_field",
    "reset_form",
    "submit_form",
    "success_visible",
    "visible_error",
]
