"""
Access request review.

Approval provisions an account and emails the sign-in method to the
requester. The request only becomes `approved` once the email is out; if
delivery fails the fresh account is removed again and the request stays
`pending`, so the admin can simply retry.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from logitrack.core.errors import NotFound, ServiceUnavailable, ValidationFailed
from logitrack.core.security.request_auth_context import get_current_principal
from logitrack.crud import access_requests as access_requests_crud
from logitrack.models.access_request import (
    ACCESS_REQUEST_APPROVED,
    ACCESS_REQUEST_PENDING,
    AccessRequest,
)
from logitrack.services.identity_service import IdentityProviderError, IdentityService
from logitrack.services.notification_service import (
    MailProvider,
    NotificationError,
    send_access_granted_email,
)

logger = logging.getLogger(__name__)


class AccessRequestService:
    def __init__(
        self,
        db: Session,
        *,
        mail_provider: MailProvider | None,
        identity: IdentityService | None = None,
    ):
        self.db = db
        self.mail_provider = mail_provider
        self.identity = identity or IdentityService(db)

    def _reviewer(self) -> str:
        principal = get_current_principal()
        return principal.email if principal else "unknown"

    def review(self, request_id: str, status: str) -> AccessRequest:
        obj = access_requests_crud.get_access_request(self.db, request_id)
        if obj is None:
            raise NotFound("Access request not found")
        if obj.status != ACCESS_REQUEST_PENDING:
            raise ValidationFailed("Access request has already been reviewed")
        if status == ACCESS_REQUEST_PENDING:
            raise ValidationFailed("Status must be approved or rejected")

        if status == ACCESS_REQUEST_APPROVED:
            self._grant_access(obj)

        obj = access_requests_crud.set_status(self.db, obj, status)
        logger.info(
            "access_request_reviewed id=%s status=%s reviewer=%s",
            obj.id,
            obj.status,
            self._reviewer(),
        )
        return obj

    def _grant_access(self, obj: AccessRequest) -> None:
        if self.mail_provider is None:
            raise ServiceUnavailable("Email service is not configured")
        if self.identity.find_by_email(obj.email) is not None:
            raise ValidationFailed("An account already exists for this email")

        try:
            account = self.identity.provision_account(obj.email)
        except IdentityProviderError as exc:
            raise ValidationFailed(str(exc)) from exc

        try:
            send_access_granted_email(
                self.mail_provider,
                to=obj.email,
                magic_link=account.magic_link,
                password=account.password,
            )
        except NotificationError:
            logger.exception("access_request_email_failed id=%s email=%s", obj.id, obj.email)
            self.identity.delete_account(account.user.id)
            raise ServiceUnavailable("Failed to send access email. The request is still pending.")
