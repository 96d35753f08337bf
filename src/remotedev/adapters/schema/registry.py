"""Pydantic-backed SchemaValidator for agent config documents.

Schemas:
- resources_per_workspace: {limits: {cpu, memory}, requests: {cpu, memory}}
  (both sections optional; an empty document is valid)
- network_policy_egress: [{allow: CIDR, except: [CIDR, ...]}, ...]
"""

from functools import lru_cache
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, IPvAnyNetwork, TypeAdapter, ValidationError

from remotedev.core.interfaces.schema_validator import SchemaValidator

# Kubernetes resource quantity (e.g. 500m, 1.5, 2Gi)
Quantity = Annotated[
    str,
    Field(pattern=r"^[0-9]+(\.[0-9]+)?(m|k|M|G|T|P|E|Ki|Mi|Gi|Ti|Pi|Ei)?$"),
]


class ResourceValues(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cpu: Quantity
    memory: Quantity


class ResourceShape(BaseModel):
    model_config = ConfigDict(extra="forbid")

    limits: ResourceValues | None = None
    requests: ResourceValues | None = None


class EgressRule(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    allow: IPvAnyNetwork
    except_: list[IPvAnyNetwork] = Field(default_factory=list, alias="except")


RESOURCES_PER_WORKSPACE = "resources_per_workspace"
NETWORK_POLICY_EGRESS = "network_policy_egress"

_SCHEMAS: dict[str, TypeAdapter] = {
    RESOURCES_PER_WORKSPACE: TypeAdapter(ResourceShape),
    NETWORK_POLICY_EGRESS: TypeAdapter(list[EgressRule]),
}


def _format_error(error: dict[str, Any]) -> str:
    loc = ".".join(str(part) for part in error["loc"])
    return f"{loc}: {error['msg']}" if loc else error["msg"]


class PydanticSchemaValidator(SchemaValidator):
    def validate(self, document: Any, schema_name: str) -> list[str]:
        adapter = _SCHEMAS[schema_name]
        try:
            adapter.validate_python(document)
        except ValidationError as exc:
            return [_format_error(e) for e in exc.errors()]
        return []


@lru_cache(maxsize=1)
def get_schema_validator() -> PydanticSchemaValidator:
    return PydanticSchemaValidator()
