"""Data models for generated API integration configs."""

from pydantic import BaseModel, ConfigDict, Field


class Input(BaseModel):
    """Request inputs for an auth call or job step."""

    headers: dict[str, str] | None = None
    body: dict | None = None


class Output(BaseModel):
    """Values captured from a response.

    Captures are free-form (``{"employees": "$.data"}``); ``name``/``path``
    is the common single-capture shape.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    path: str | None = None


class Auth(BaseModel):
    """How the integration authenticates."""

    type: str
    endpoint: str | None = None
    method: str | None = None
    inputs: Input | list[Input] | None = None
    outputs: list[Output] | None = None


class FieldMap(BaseModel):
    """Mapping from response fields to the normalized record fields."""

    model_config = ConfigDict(populate_by_name=True)

    external_id: str | None = Field(default=None, alias="ExternalId")
    name: str | None = Field(default=None, alias="Name")
    email: str | None = Field(default=None, alias="Email")


class Step(BaseModel):
    """One step of a job: a request, a mapping, or a store operation."""

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    name: str | None = None
    endpoint: str | None = None
    method: str | None = None
    inputs: Input | None = None
    outputs: Output | list[Output] | None = None
    input: str | None = None
    field_map: FieldMap | None = Field(default=None, alias="map")
    collection: str | None = None
    operation: str | None = None
    match_field: str | None = None


class Job(BaseModel):
    """A named sync job."""

    name: str
    steps: list[Step] = Field(default_factory=list)


class APIConfig(BaseModel):
    """Integration config produced by the agent."""

    integration: str
    account_id: str
    base_url: str
    auth: Auth | None = None
    jobs: list[Job] = Field(default_factory=list)
