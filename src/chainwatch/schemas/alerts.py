from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class AlertDefinition(BaseModel):
    """One configured remote read check (a document of the alertsConfig collection)."""

    name: str = Field(..., description="Unique alert name; join key into alert state.")
    rpc_url: str = Field(..., description="JSON-RPC endpoint used for the read.", alias="rpcUrl")
    contract_address: str = Field(..., description="Address of the contract to query.", alias="contractAddress")
    function_abi_string: Any = Field(
        ...,
        description="Single-function ABI: human-readable signature, JSON fragment or JSON ABI list.",
        alias="functionAbiString",
    )
    function_name: str = Field(..., description="Name of the function to invoke.", alias="functionName")
    function_inputs: Optional[List[Any]] = Field(
        default=None,
        description="Ordered call arguments; absent or empty means a zero-argument call.",
        alias="functionInputs",
    )

    @field_validator("contract_address", mode="before")
    @classmethod
    def _address_to_str(cls, v: Any) -> Any:
        # Addresses are sometimes stored as non-string BSON values.
        return v if v is None else str(v)

    @property
    def call_inputs(self) -> List[Any]:
        """Arguments to pass to the remote call (empty list for a zero-argument call)."""
        return list(self.function_inputs or [])


class AlertState(BaseModel):
    """Last observed value for an alert (a document of the alerts collection)."""

    name: str = Field(..., description="Alert name (join key).")
    value: Any = Field(default=None, description="Last observed remote read result.")
    timestamp: Optional[datetime] = Field(default=None, description="UTC time the value was last changed.")


class RunSummary(BaseModel):
    """Outcome of one alert-check run."""

    checked: int = Field(0, ge=0, description="Alerts evaluated to completion.")
    changed: int = Field(0, ge=0, description="Alerts whose value changed (persisted + notified).")
    unchanged: int = Field(0, ge=0, description="Alerts whose value matched the stored one.")
    failed: List[str] = Field(default_factory=list, description="Names of alerts whose evaluation failed.")
    completed: bool = Field(False, description="Whether the evaluation loop finished with no failure.")
    heartbeat_sent: bool = Field(False, description="Whether the success heartbeat was delivered.")
