"""Push gateway result schemas"""

from pydantic import BaseModel, Field
from typing import List, Optional

class TokenResult(BaseModel):
    token: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

class MulticastResult(BaseModel):
    """Per-token outcome of one multicast send"""

    success_count: int = 0
    failure_count: int = 0
    responses: List[TokenResult] = Field(default_factory=list)

    @property
    def failed_tokens(self) -> List[str]:
        return [r.token for r in self.responses if not r.success]

    def merge(self, other: "MulticastResult") -> "MulticastResult":
        return MulticastResult(
            success_count=self.success_count + other.success_count,
            failure_count=self.failure_count + other.failure_count,
            responses=self.responses + other.responses,
        )

class TopicManagementResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0
    errors: List[str] = Field(default_factory=list)

class UserDeliveryReport(BaseModel):
    """What happened when delivering to one user's devices"""

    user_id: str
    success_count: int = 0
    failure_count: int = 0
    deactivated_tokens: List[str] = Field(default_factory=list)
