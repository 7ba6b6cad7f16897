from typing import Optional

from media_gateway.models.errors import (
    AccessDeniedError,
    DependencyUnavailableError,
    UnauthenticatedError,
)
from media_gateway.models.schemas import (
    AccessStatus,
    CallerIdentity,
    Credentials,
    GateOutcome,
)
from media_gateway.services.access_oracle import AccessOracle
from media_gateway.utils.logger import audit_line, logger


class AccessGate:
    """
    Fail-closed authorization in front of URL signing.

    Each call ends in exactly one of GRANTED, DENIED or UNAVAILABLE, and each
    terminal state is written to the audit log. A missing oracle never
    degrades to a weaker check, and an oracle error looks the same to the
    caller as a policy deny.
    """

    def __init__(self, oracle: Optional[AccessOracle], reject_anonymous: bool = False):
        self.oracle = oracle
        self.reject_anonymous = reject_anonymous

    @property
    def available(self) -> bool:
        return self.oracle is not None

    async def authorize(
        self,
        resource_id: str,
        credentials: Credentials,
        client_ip: str,
        action: str,
        object_id: Optional[str] = None,
    ) -> CallerIdentity:
        if self.oracle is None:
            logger.error(audit_line(
                f"{action}_UNAVAILABLE", ip=client_ip, resource=resource_id, file=object_id,
                outcome=GateOutcome.UNAVAILABLE.value, reason="access_oracle_missing",
            ))
            raise DependencyUnavailableError("Security module unavailable")

        if self.reject_anonymous and credentials.is_anonymous():
            logger.warning(audit_line(
                f"{action}_DENIED", ip=client_ip, resource=resource_id, file=object_id,
                outcome=GateOutcome.DENIED.value, reason="no_credentials",
            ))
            raise UnauthenticatedError()

        try:
            result = await self.oracle.check_access(resource_id, credentials)
        except Exception as e:
            # Operational failure in the log, plain deny for the caller
            logger.error(audit_line(
                f"{action}_DENIED", ip=client_ip, resource=resource_id, file=object_id,
                outcome=GateOutcome.DENIED.value, reason="oracle_error", error=repr(e),
            ))
            raise AccessDeniedError() from e

        if result.status != AccessStatus.GRANT:
            logger.warning(audit_line(
                f"{action}_DENIED", ip=client_ip, resource=resource_id, file=object_id,
                outcome=GateOutcome.DENIED.value, reason="access_denied",
            ))
            raise AccessDeniedError()

        logger.info(audit_line(
            f"{action}_GRANTED", ip=client_ip, resource=resource_id, file=object_id,
            outcome=GateOutcome.GRANTED.value, author=result.principal,
        ))
        return CallerIdentity(credentials=credentials, principal=result.principal)
