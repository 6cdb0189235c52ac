# Copyright (c) idwallet Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Enrollment Workflow

Enrolls a principal at most once: the wallet is checked first, the CA is
only called on a miss, and the issued identity is written back.

    CHECKING --present--> ALREADY_ENROLLED
    CHECKING --absent---> ENROLLING --ok--> (put) --ok--> DONE
                                   \\--error--> FAILED   \\--error--> FAILED

Every failure ends in FAILED with the collaborator's error kept verbatim
on the outcome. Nothing is retried.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from .ca.client import EnrollmentClient
from .ca.endpoint import CAEndpoint
from .exceptions import EnrollmentError, IdWalletError, StoreUnavailableError
from .identity.record import validate_principal
from .observability.metrics import EnrollmentMetrics
from .wallet.provider import Wallet

logger = logging.getLogger(__name__)


class EnrollmentState(str, Enum):
    CHECKING = "checking"
    ENROLLING = "enrolling"
    DONE = "done"
    ALREADY_ENROLLED = "already_enrolled"
    FAILED = "failed"


@dataclass
class EnrollmentOutcome:
    """Result of one workflow run.

    Attributes:
        principal: The principal the run was for.
        state: Terminal state (DONE, ALREADY_ENROLLED or FAILED).
        error: The error that ended the run in FAILED.
        history: States visited, in order, ending with ``state``.
    """

    principal: str
    state: EnrollmentState
    error: Optional[IdWalletError] = None
    history: list[EnrollmentState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state in (EnrollmentState.DONE, EnrollmentState.ALREADY_ENROLLED)

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    def raise_for_failure(self) -> None:
        """Re-raise the stored error if the run failed."""
        if self.error is not None:
            raise self.error


class EnrollmentWorkflow:
    """
    Check-enroll-store workflow for a single CA and membership.

    Args:
        wallet: Credential store to check and populate.
        client: Client used to talk to the CA.
        endpoint: CA to enroll with.
        membership_id: MSP id issued identities are tagged with.
        metrics: Optional metrics to record outcomes into.
    """

    def __init__(
        self,
        wallet: Wallet,
        client: EnrollmentClient,
        endpoint: CAEndpoint,
        membership_id: str,
        metrics: Optional[EnrollmentMetrics] = None,
    ):
        self.wallet = wallet
        self.client = client
        self.endpoint = endpoint
        self.membership_id = membership_id
        self.metrics = metrics

    def run(
        self,
        principal: str,
        secret: str,
        *,
        profile: Optional[str] = None,
        attributes: Optional[Sequence[str]] = None,
    ) -> EnrollmentOutcome:
        """
        Enroll ``principal`` unless the wallet already holds it.

        Args:
            principal: Enrollment id, also used as the wallet label.
            secret: Enrollment secret; used for this request only.
            profile: Optional CA signing profile.
            attributes: Optional certificate attributes to request.

        Returns:
            EnrollmentOutcome in DONE, ALREADY_ENROLLED or FAILED.

        Raises:
            InvalidPrincipalError: If ``principal`` cannot be a wallet label.
        """
        validate_principal(principal)
        history = [EnrollmentState.CHECKING]

        try:
            present = self.wallet.exists(principal)
        except StoreUnavailableError as exc:
            return self._fail(principal, exc, history)

        if present:
            logger.info("An identity for %s already exists in the wallet", principal)
            return self._finish(principal, EnrollmentState.ALREADY_ENROLLED, history)

        history.append(EnrollmentState.ENROLLING)
        started = time.monotonic()
        try:
            record = self.client.enroll(
                self.endpoint,
                principal,
                secret,
                self.membership_id,
                profile=profile,
                attributes=attributes,
            )
        except EnrollmentError as exc:
            return self._fail(principal, exc, history)
        finally:
            if self.metrics is not None:
                self.metrics.record_ca_request(time.monotonic() - started)

        try:
            self.wallet.put(principal, record)
        except StoreUnavailableError as exc:
            logger.warning(
                "CA issued a certificate for %s but it could not be stored; "
                "re-enrolling requires the CA to accept the secret again",
                principal,
            )
            return self._fail(principal, exc, history)

        logger.info("Successfully enrolled %s and imported it into the wallet", principal)
        return self._finish(principal, EnrollmentState.DONE, history)

    def _finish(
        self,
        principal: str,
        state: EnrollmentState,
        history: list[EnrollmentState],
        error: Optional[IdWalletError] = None,
    ) -> EnrollmentOutcome:
        history.append(state)
        if self.metrics is not None:
            self.metrics.record_outcome(state.value, error.kind if error else None)
        return EnrollmentOutcome(principal=principal, state=state, error=error, history=history)

    def _fail(
        self,
        principal: str,
        error: IdWalletError,
        history: list[EnrollmentState],
    ) -> EnrollmentOutcome:
        if error.principal is None:
            error.principal = principal
        logger.error("Failed to enroll %s: %s: %s", principal, error.kind, error)
        return self._finish(principal, EnrollmentState.FAILED, history, error)
