"""
Sign-up and sign-in screens.

Both controllers register themselves as the gateway's authentication
listener for the duration of a submit, so any AuthenticationError comes
back to them as an Alert for the user.
"""

from typing import Optional

from expense_tracker.controllers.base import error_alert
from expense_tracker.gateway import DataGateway
from expense_tracker.models.records import Alert


SIGN_UP_INPUT_ERROR = "Passwords do not match or email/password is empty"
SIGN_IN_INPUT_ERROR = "Email and password are required"


class _AuthController:
    def __init__(self, gateway: DataGateway):
        self._gateway = gateway
        self.alerts: list[Alert] = []
        self.signed_up = False
        self.signed_in = False

    @property
    def last_alert(self) -> Optional[Alert]:
        return self.alerts[-1] if self.alerts else None

    def on_sign_up_success(self) -> None:
        self.signed_up = True

    def on_sign_in_success(self) -> None:
        self.signed_in = True

    def on_auth_error(self, error: Exception) -> None:
        self.alerts.append(error_alert(str(error)))


class SignUpController(_AuthController):
    """Create-account form."""

    async def submit(
        self,
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
        watch: bool = True,
    ) -> bool:
        if not email or not password or password != confirm_password:
            self.alerts.append(error_alert(SIGN_UP_INPUT_ERROR))
            return False

        self._gateway.auth_listener = self
        return await self._gateway.create_account(email, password, watch=watch)


class LogInController(_AuthController):
    """Sign-in form."""

    async def submit(
        self,
        email: Optional[str],
        password: Optional[str],
        watch: bool = True,
    ) -> bool:
        if not email or not password:
            self.alerts.append(error_alert(SIGN_IN_INPUT_ERROR))
            return False

        self._gateway.auth_listener = self
        return await self._gateway.sign_in(email, password, watch=watch)
