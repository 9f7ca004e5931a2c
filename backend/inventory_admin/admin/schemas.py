from pydantic import BaseModel, Field


class PermissionOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None = None


class PermissionsListResponse(BaseModel):
    items: list[PermissionOut]


class GrantsUpdateRequest(BaseModel):
    codes: list[str] = Field(default_factory=list, max_length=64)


class UserStatusRequest(BaseModel):
    is_active: bool


class UserAccessOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    is_active: bool
    permissions: list[str]
    revoked_tokens: int = 0


class BulkGrantsRequest(BaseModel):
    user_ids: list[int] = Field(min_length=1, max_length=500)
    codes: list[str] = Field(default_factory=list, max_length=64)
    # False merges into each user's current grants
    replace_existing: bool = False


class BulkGrantsResponse(BaseModel):
    success: bool = True
    affected_users: int
    skipped_admin_ids: list[int] = Field(default_factory=list)
