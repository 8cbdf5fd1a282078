from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

UserType = Literal["customer", "agent"]


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    phone: str | None = None
    email: str | None = None
    password: str | None = None
    user_type: str | None = Field(default=None, alias="userType")


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    phone: str
    password: str
    user_type: UserType = Field(alias="userType")


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    name: str
    phone: str
    email: str | None = None
    user_type: UserType = Field(
        validation_alias=AliasChoices("user_type", "userType"),
        serialization_alias="userType",
    )


class AuthResponse(BaseModel):
    user: UserResponse
    token: str
