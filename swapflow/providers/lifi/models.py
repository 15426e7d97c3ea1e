"""
LI.FI Data Models

Typed views over the quote, route and status payloads returned by the
LI.FI API. Anything the swap lifecycle reads is validated here; the rest
of each payload is kept as-is so it can be persisted and replayed.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SettlementStatus(str, Enum):
    """Transfer status reported by ``GET /status``."""

    NOT_FOUND = "NOT_FOUND"
    INVALID = "INVALID"
    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class ProcessType(str, Enum):
    """Kind of on-chain action performed while executing a step."""

    TOKEN_ALLOWANCE = "TOKEN_ALLOWANCE"
    SWAP = "SWAP"
    CROSS_CHAIN = "CROSS_CHAIN"


class LifiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class QuoteEstimate(LifiModel):
    """The ``estimate`` block of a quote or step."""

    to_amount: str = Field(..., alias="toAmount", description="Estimated output amount")
    to_amount_min: Optional[str] = Field(None, alias="toAmountMin")
    from_amount: Optional[str] = Field(None, alias="fromAmount")
    approval_address: Optional[str] = Field(None, alias="approvalAddress")
    execution_duration: Optional[float] = Field(None, alias="executionDuration")
    fee_costs: List[Dict[str, Any]] = Field(default_factory=list, alias="feeCosts")
    gas_costs: List[Dict[str, Any]] = Field(default_factory=list, alias="gasCosts")

    @field_validator("to_amount", mode="before")
    @classmethod
    def _numeric_amount(cls, value: Any) -> str:
        if isinstance(value, bool) or value is None:
            raise ValueError("toAmount must be numeric")
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ValueError(f"toAmount {value!r} is not numeric") from exc
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"toAmount {value!r} must be a non-negative number")
        return str(value)


class QuotePayload(LifiModel):
    """Response of ``GET /quote``."""

    id: Optional[str] = None
    type: Optional[str] = None
    tool: Optional[str] = None
    action: Dict[str, Any] = Field(default_factory=dict)
    estimate: QuoteEstimate


class ExecutionProcess(LifiModel):
    type: str = ProcessType.SWAP.value
    status: str = "PENDING"
    tx_hash: Optional[str] = Field(None, alias="txHash")


class StepExecution(LifiModel):
    status: str = "PENDING"
    process: List[ExecutionProcess] = Field(default_factory=list)


class RouteStep(LifiModel):
    """One step of a route; ``tool`` names the bridge or exchange it uses."""

    id: str
    type: Optional[str] = None
    tool: Optional[str] = None
    action: Dict[str, Any] = Field(default_factory=dict)
    estimate: Dict[str, Any] = Field(default_factory=dict)
    included_steps: List[Dict[str, Any]] = Field(default_factory=list, alias="includedSteps")
    transaction_request: Optional[Dict[str, Any]] = Field(None, alias="transactionRequest")
    execution: Optional[StepExecution] = None

    @property
    def is_cross_chain(self) -> bool:
        from_chain = self.action.get("fromChainId")
        to_chain = self.action.get("toChainId")
        return from_chain is not None and to_chain is not None and from_chain != to_chain

    @property
    def tx_hash(self) -> Optional[str]:
        """Hash of the step's main (non-approval) transaction, once executed."""
        if not self.execution:
            return None
        for process in self.execution.process:
            if process.type != ProcessType.TOKEN_ALLOWANCE and process.tx_hash:
                return process.tx_hash
        return None


class RouteResult(LifiModel):
    """A route as returned by ``POST /advanced/routes``, plus execution state."""

    id: str
    from_chain_id: int = Field(..., alias="fromChainId")
    to_chain_id: int = Field(..., alias="toChainId")
    from_amount: str = Field(..., alias="fromAmount")
    to_amount: Optional[str] = Field(None, alias="toAmount")
    from_address: Optional[str] = Field(None, alias="fromAddress")
    steps: List[RouteStep] = Field(default_factory=list)

    @property
    def settlement_step(self) -> Optional[RouteStep]:
        """Step whose transfer settles the route: the cross-chain hop, else the last step."""
        for step in self.steps:
            if step.is_cross_chain:
                return step
        return self.steps[-1] if self.steps else None

    @property
    def bridge(self) -> Optional[str]:
        """Tool of the settlement step, needed by ``GET /status``."""
        step = self.settlement_step
        return step.tool if step else None

    @property
    def settlement_tx_hash(self) -> Optional[str]:
        step = self.settlement_step
        return step.tx_hash if step else None

    @property
    def source_tx_hash(self) -> Optional[str]:
        for step in self.steps:
            if step.tx_hash:
                return step.tx_hash
        return None

    @property
    def is_executed(self) -> bool:
        return bool(self.steps) and all(step.tx_hash for step in self.steps)


class RoutesResponse(LifiModel):
    routes: List[RouteResult] = Field(default_factory=list)


class StatusPayload(LifiModel):
    """Response of ``GET /status``."""

    status: SettlementStatus
    substatus: Optional[str] = None
    substatus_message: Optional[str] = Field(None, alias="substatusMessage")
    tool: Optional[str] = None
    sending: Dict[str, Any] = Field(default_factory=dict)
    receiving: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> Any:
        # Statuses added by the service later are treated as still in flight
        if isinstance(value, str) and value not in SettlementStatus.__members__:
            return SettlementStatus.PENDING
        return value
