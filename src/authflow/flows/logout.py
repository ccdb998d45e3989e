"""Logout flow: Me profile -> sign out -> logged-out masterbar."""

from __future__ import annotations

from authflow.checkpoints import CheckpointSink, NullCheckpointSink
from authflow.config import Settings
from authflow.errors import LogoutFailedError
from authflow.flows.steps import FlowResult, FlowRun, FlowState
from authflow.pages import LoggedOutMasterbarComponent, NavbarComponent, ProfilePage
from authflow.session import Session


class LogoutFlow:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        *,
        checkpoints: CheckpointSink | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._checkpoints = checkpoints or NullCheckpointSink()
        self._run = FlowRun("logout", session_id=session.session_id)

    @property
    def state(self) -> FlowState:
        return self._run.state

    @property
    def result(self) -> FlowResult | None:
        return self._run.result

    async def run(self) -> FlowResult:
        self._run.start()
        error: BaseException | None = None
        try:
            await self._sign_out()
        except BaseException as e:
            error = e
            raise
        finally:
            result = self._run.finish(error)
        return result

    async def _sign_out(self) -> None:
        profile = ProfilePage(self._session, self._settings)

        async with self._run.step("open profile"):
            await NavbarComponent(self._session, self._settings).click_profile_link()
            if not await profile.displayed():
                raise LogoutFailedError("The profile page is not displayed")
        if self._settings.visual_diff:
            async with self._run.step("checkpoint profile page"):
                await self._checkpoints.checkpoint("Me Profile Page")
        async with self._run.step("sign out"):
            await profile.click_sign_out()
        async with self._run.step("assert logged out"):
            masterbar = LoggedOutMasterbarComponent(self._session, self._settings)
            if not await masterbar.displayed():
                raise LogoutFailedError("The logged out masterbar isn't displayed after logging out")
