"""JSON endpoints for validating fields and managing registered users."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import FIELD_NAMES, RegistrationInput, UserRecord
from .storage import StorageError
from .store import RegistrationRejected, RegistrationStore
from .validation import validate_field

logger = logging.getLogger("registration.api")


class RegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(default="", alias="fullName")
    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")
    phone: str = ""
    date_of_birth: str = Field(default="", alias="dateOfBirth")

    def to_input(self) -> RegistrationInput:
        return RegistrationInput(
            full_name=self.full_name,
            email=self.email,
            password=self.password,
            confirm_password=self.confirm_password,
            phone=self.phone,
            date_of_birth=self.date_of_birth,
        )


class UserRecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    full_name: str = Field(alias="fullName")
    email: str
    phone: str
    date_of_birth: str = Field(alias="dateOfBirth")
    registered_at: str = Field(alias="registeredAt")


class UserListResponse(BaseModel):
    users: List[UserRecordResponse]
    count: int


class FieldValidationRequest(BaseModel):
    field: str
    value: str = ""
    password: Optional[str] = None

    @field_validator("field")
    @classmethod
    def _known_field(cls, value: str) -> str:
        if value not in FIELD_NAMES:
            raise ValueError(f"field must be one of {', '.join(FIELD_NAMES)}")
        return value


class FieldValidationResponse(BaseModel):
    field: str
    valid: bool
    error: Optional[str] = None


def _record_to_response(record: UserRecord) -> UserRecordResponse:
    return UserRecordResponse(
        id=record.id,
        full_name=record.full_name,
        email=record.email,
        phone=record.phone,
        date_of_birth=record.date_of_birth,
        registered_at=record.registered_at,
    )


def _storage_unavailable(exc: StorageError) -> HTTPException:
    logger.error("Registration storage failure: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Registration storage is unavailable",
    )


def register_api_routes(app: FastAPI, store: RegistrationStore, *, prefix: str = "/api") -> None:
    """Attach the JSON API to ``app`` under ``prefix``."""

    router = APIRouter(prefix=prefix)

    @router.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @router.get("/users", response_model=UserListResponse)
    def list_users() -> UserListResponse:
        records = store.load_all()
        return UserListResponse(
            users=[_record_to_response(record) for record in records],
            count=len(records),
        )

    @router.post(
        "/users",
        response_model=UserRecordResponse,
        status_code=status.HTTP_201_CREATED,
    )
    def create_user(request: RegistrationRequest) -> UserRecordResponse:
        try:
            record = store.register(request.to_input())
        except RegistrationRejected as exc:
            raise HTTPException(
                status_code=422,
                detail={"errors": exc.errors},
            ) from exc
        except StorageError as exc:
            raise _storage_unavailable(exc) from exc
        return _record_to_response(record)

    @router.get("/users/{user_id}", response_model=UserRecordResponse)
    def get_user(user_id: str) -> UserRecordResponse:
        record = store.get(user_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return _record_to_response(record)

    @router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_user(user_id: str) -> Response:
        try:
            store.remove_by_id(user_id)
        except StorageError as exc:
            raise _storage_unavailable(exc) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/validate", response_model=FieldValidationResponse)
    async def validate(request: FieldValidationRequest) -> FieldValidationResponse:
        context = {"password": request.password or ""}
        error = validate_field(request.field, request.value, context)
        return FieldValidationResponse(field=request.field, valid=error is None, error=error)

    app.include_router(router)


__all__ = [
    "FieldValidationRequest",
    "FieldValidationResponse",
    "RegistrationRequest",
    "UserListResponse",
    "UserRecordResponse",
    "register_api_routes",
]
