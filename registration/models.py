"""Domain models for registration submissions and stored user records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping


FIELD_NAMES = (
    "fullName",
    "email",
    "password",
    "confirmPassword",
    "phone",
    "dateOfBirth",
)

_INPUT_ATTRIBUTES = {
    "fullName": "full_name",
    "email": "email",
    "password": "password",
    "confirmPassword": "confirm_password",
    "phone": "phone",
    "dateOfBirth": "date_of_birth",
}


@dataclass(frozen=True)
class RegistrationInput:
    """Raw values typed into the registration form. Never persisted."""

    full_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone: str = ""
    date_of_birth: str = ""

    @staticmethod
    def from_mapping(data: Mapping[str, object]) -> "RegistrationInput":
        """Build an input from camelCase form or JSON field names."""

        values: Dict[str, str] = {}
        for field_name, attribute in _INPUT_ATTRIBUTES.items():
            raw = data.get(field_name)
            values[attribute] = "" if raw is None else str(raw)
        return RegistrationInput(**values)

    def get(self, field_name: str) -> str:
        attribute = _INPUT_ATTRIBUTES.get(field_name)
        if attribute is None:
            raise KeyError(f"Unknown registration field '{field_name}'")
        return getattr(self, attribute)

    def with_value(self, field_name: str, value: str) -> "RegistrationInput":
        attribute = _INPUT_ATTRIBUTES.get(field_name)
        if attribute is None:
            raise KeyError(f"Unknown registration field '{field_name}'")
        values = {name: getattr(self, name) for name in _INPUT_ATTRIBUTES.values()}
        values[attribute] = value
        return RegistrationInput(**values)

    def as_dict(self) -> Dict[str, str]:
        return {field_name: self.get(field_name) for field_name in FIELD_NAMES}


@dataclass(frozen=True)
class UserRecord:
    """A registered user as kept in the store. Passwords are never included."""

    id: str
    full_name: str
    email: str
    phone: str
    date_of_birth: str
    registered_at: str

    @staticmethod
    def from_input(
        data: RegistrationInput, *, record_id: str, registered_at: str
    ) -> "UserRecord":
        return UserRecord(
            id=record_id,
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            registered_at=registered_at,
        )

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "UserRecord":
        """Create a :class:`UserRecord` from its serialized form."""

        required_fields = {"id", "fullName", "email", "phone", "dateOfBirth", "registeredAt"}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(f"Missing required user record fields: {', '.join(sorted(missing))}")

        record_id = str(data["id"]).strip()
        if not record_id:
            raise ValueError("User record identifier must not be empty")

        return UserRecord(
            id=record_id,
            full_name=str(data["fullName"]),
            email=str(data["email"]),
            phone=str(data["phone"]),
            date_of_birth=str(data["dateOfBirth"]),
            registered_at=str(data["registeredAt"]),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "dateOfBirth": self.date_of_birth,
            "registeredAt": self.registered_at,
        }


__all__ = ["FIELD_NAMES", "RegistrationInput", "UserRecord"]
