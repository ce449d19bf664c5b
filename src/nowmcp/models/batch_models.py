"""Input models for the batch MCP tools."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateOperationInput(BaseModel):
    """One record to create."""

    model_config = ConfigDict(populate_by_name=True)

    table: str = Field(min_length=1, description="Target table name (e.g. 'incident')")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Field values for the new record. String values may reference "
        "earlier results as ${name}.",
    )
    save_as: Optional[str] = Field(
        default=None,
        alias="saveAs",
        description="Key to save the created sys_id under for later ${key} references.",
    )

    def to_operation(self) -> Dict[str, Any]:
        operation: Dict[str, Any] = {"table": self.table, "data": dict(self.data)}
        if self.save_as is not None:
            operation["saveAs"] = self.save_as
        return operation


class UpdateOperationInput(BaseModel):
    """One record to update."""

    model_config = ConfigDict(populate_by_name=True)

    table: str = Field(min_length=1, description="Target table name")
    sys_id: str = Field(min_length=1, alias="sysId", description="sys_id of the record")
    data: Dict[str, Any] = Field(default_factory=dict, description="Field values to write")

    def to_operation(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
