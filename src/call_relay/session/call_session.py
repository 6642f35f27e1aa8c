"""
Client-side call session state machine.

CallSession turns local commands (enable audio, call, end) into outbound
protocol messages and inbound protocol messages into state transitions and
media-negotiation steps. It knows nothing about the transport: messages go
out through an injected async ``send`` callable and come in through the
``handle_*`` methods.

Negotiation steps run as asyncio tasks owned by the session so that a
candidate arriving while a description is still being applied is queued
instead of failing, and so that every return to IDLE can cancel whatever
negotiation is still outstanding.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from call_relay.core.types import (
    ClientId,
    WS_KEY_ACCEPTED,
    WS_KEY_TARGET_ID,
    WS_KEY_TYPE,
    WS_MSG_ANSWER,
    WS_MSG_CANDIDATE,
    WS_MSG_DISCONNECT,
    WS_MSG_OFFER,
    WS_MSG_REQUEST,
    WS_MSG_RESPONSE,
)
from call_relay.infrastructure.exceptions import (
    PreconditionViolation,
    TargetUnavailableError,
)
from call_relay.media.base import (
    IceCandidate,
    MediaSource,
    PeerConnection,
    SessionDescription,
    TrackCallback,
)

from .types import ACTIVE_CALL_STATES, CallRole, CallState

SendCallable = Callable[[Dict[str, Any]], Awaitable[None]]
ConsentPrompt = Callable[[ClientId], Union[bool, Awaitable[bool]]]
StatusCallback = Callable[[str], None]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _reject_all(from_id: ClientId) -> bool:
    return False


class CallSession:
    """State machine for one client's calls."""

    def __init__(
        self,
        send: SendCallable,
        peer_factory: Callable[[], PeerConnection],
        media_factory: Callable[[], Union[MediaSource, Awaitable[MediaSource]]],
        consent_prompt: Optional[ConsentPrompt] = None,
        on_status: Optional[StatusCallback] = None,
        on_remote_track: Optional[TrackCallback] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize the call session.

        Args:
            send: Coroutine function delivering one message to the relay
            peer_factory: Creates a fresh PeerConnection for each call
            media_factory: Opens the local capture device (sync or async)
            consent_prompt: Asked whether to accept an incoming call; rejects
                every call when omitted
            on_status: Receives human-readable progress strings
            on_remote_track: Renders the remote audio track; the media
                backend's default applies when omitted
            logger: Logger instance
        """
        self._send_fn = send
        self._peer_factory = peer_factory
        self._media_factory = media_factory
        self._consent_prompt = consent_prompt or _reject_all
        self._on_status = on_status
        self._on_remote_track = on_remote_track
        self.logger = logger or logging.getLogger(__name__)

        self.client_id: Optional[ClientId] = None
        self.target_id: Optional[ClientId] = None
        self.state: CallState = CallState.IDLE
        self.role: Optional[CallRole] = None
        self.local_media: Optional[MediaSource] = None
        self.peer: Optional[PeerConnection] = None
        self.last_error: Optional[Exception] = None

        self._local_description_set = False
        self._remote_description_set = False
        self._pending_candidates: List[IceCandidate] = []
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Local commands
    # ------------------------------------------------------------------

    def assign_id(self, client_id: ClientId) -> None:
        self.client_id = client_id
        self._status(f"Client ID: {client_id}")

    async def enable_local_media(self) -> MediaSource:
        """Open the local capture device (explicit user action)."""
        if self.local_media is None:
            self.local_media = await _maybe_await(self._media_factory())
            self._status("Local audio stream enabled.")
        return self.local_media

    async def call(self, target_id: Optional[ClientId]) -> None:
        """
        Ask the relay to ring target_id.

        Raises:
            PreconditionViolation: If the session has no identifier yet, the
                target is empty or our own identifier, local audio is not
                enabled, or a call is already in progress
        """
        if self.client_id is None:
            raise PreconditionViolation("Session is not initialized; no client ID yet.")

        target = str(target_id).strip() if target_id is not None else ""
        if not target:
            raise PreconditionViolation("Target ID is required.")
        if target == self.client_id:
            raise PreconditionViolation("Cannot call yourself.")
        if self.local_media is None:
            raise PreconditionViolation("Local audio is not enabled.")
        if self.state is not CallState.IDLE:
            raise PreconditionViolation(f"Cannot place a call while {self.state.value}.")

        self.target_id = target
        self._transition(CallState.AWAITING_CALL_DECISION)
        try:
            await self._send({WS_KEY_TYPE: WS_MSG_REQUEST, WS_KEY_TARGET_ID: target})
        except Exception:
            self._reset_call_state()
            raise
        self._status(f"Call request sent to: {target}")

    async def end_call(self) -> bool:
        """
        Hang up the current call or call attempt.

        Returns:
            False when there was nothing to end
        """
        if self.target_id is None:
            self._status("No active call to end.")
            return False

        target = self.target_id
        try:
            await self._send({WS_KEY_TYPE: WS_MSG_DISCONNECT, WS_KEY_TARGET_ID: target})
            self._status("Disconnect message sent to server.")
        except Exception as e:
            self.logger.warning(f"[{self.client_id}] Could not send disconnect: {e}")
            self._status("WebSocket connection is not open.")

        await self._teardown()
        self._status("Call ended.")
        return True

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    async def handle_request(self, from_id: ClientId) -> bool:
        """Ask the local user about an incoming call and answer the relay."""
        previous_state = self.state
        self._transition(CallState.AWAITING_LOCAL_DECISION)

        try:
            accepted = bool(await _maybe_await(self._consent_prompt(from_id)))
        except Exception as e:
            self.logger.error(f"[{self.client_id}] Consent prompt failed: {e}", exc_info=True)
            accepted = False

        if accepted:
            if self.target_id is not None:
                await self.end_call()
            try:
                await self.enable_local_media()
            except Exception as e:
                self.logger.error(f"[{self.client_id}] Cannot open local audio: {e}")
                self._status(f"Cannot answer call from {from_id}: local audio unavailable.")
                accepted = False

        await self._send(
            {
                WS_KEY_TYPE: WS_MSG_RESPONSE,
                WS_KEY_TARGET_ID: from_id,
                WS_KEY_ACCEPTED: accepted,
            }
        )

        if not accepted:
            self._status(f"Call rejected from: {from_id}")
            if self.state is CallState.AWAITING_LOCAL_DECISION:
                # Back to the call we were already in, if any
                self._transition(previous_state if self.target_id is not None else CallState.IDLE)
                # Negotiation may have completed while the prompt was open
                self._check_established()
            return False

        self.target_id = from_id
        self._status(f"Call accepted from: {from_id}")
        self._start_call(CallRole.ANSWERER)
        return True

    async def handle_response(self, from_id: ClientId, accepted: bool) -> None:
        if from_id != self.target_id and accepted:
            await self._release_late_acceptance(from_id)
            return
        if self.state is not CallState.AWAITING_CALL_DECISION or from_id != self.target_id:
            self.logger.warning(f"[{self.client_id}] Ignoring unexpected response from {from_id}")
            return

        if not accepted:
            self._status(f"Call rejected by: {from_id}")
            self._reset_call_state()
            return

        self._status(f"Call accepted by: {from_id}")
        self._start_call(CallRole.OFFERER)

    async def _release_late_acceptance(self, from_id: ClientId) -> None:
        """
        Undo a pairing the relay recorded for a call we already abandoned.

        The relay pairs on acceptance without checking the caller is still
        waiting, and doing so dissolves any pairing we held.
        """
        self.logger.info(f"[{self.client_id}] Releasing late acceptance from {from_id}")
        if self.in_call:
            self._status(f"Call with {self.target_id} replaced by a late answer from {from_id}.")
            await self._teardown()
        try:
            await self._send({WS_KEY_TYPE: WS_MSG_DISCONNECT, WS_KEY_TARGET_ID: from_id})
        except Exception as e:
            self.logger.warning(f"[{self.client_id}] Could not release {from_id}: {e}")

    async def handle_offer(self, from_id: ClientId, offer: SessionDescription) -> None:
        if not self._accepts_signal_from(from_id, WS_MSG_OFFER):
            return
        if self.role is not CallRole.ANSWERER:
            self.logger.warning(f"[{self.client_id}] Ignoring offer while acting as {self.role}")
            return
        self._spawn(self._answer_offer(from_id, offer))

    async def handle_answer(self, from_id: ClientId, answer: SessionDescription) -> None:
        if not self._accepts_signal_from(from_id, WS_MSG_ANSWER):
            return
        if self.role is not CallRole.OFFERER:
            self.logger.warning(f"[{self.client_id}] Ignoring answer while acting as {self.role}")
            return
        self._spawn(self._apply_answer(answer))

    async def handle_candidate(self, from_id: ClientId, candidate: IceCandidate) -> None:
        if not self._accepts_signal_from(from_id, WS_MSG_CANDIDATE):
            return
        if not self._remote_description_set:
            self._pending_candidates.append(candidate)
            self.logger.debug(f"[{self.client_id}] Queued early candidate from {from_id}")
            return
        await self._add_candidate(candidate)

    async def handle_disconnect(self, from_id: ClientId, reason: Optional[str] = None) -> None:
        if self.target_id is None or from_id != self.target_id:
            self.logger.debug(f"[{self.client_id}] Ignoring disconnect from {from_id}")
            return

        suffix = f" ({reason})" if reason else ""
        self._status(f"Call disconnected by: {from_id}{suffix}")
        await self._teardown()

    async def handle_error(self, message: str) -> None:
        self._status(f"Server error: {message}")
        if self.state is CallState.AWAITING_CALL_DECISION:
            self.last_error = TargetUnavailableError(message, target_id=self.target_id)
            self._status(f"Call to {self.target_id} failed: {message}")
            self._reset_call_state()

    async def handle_connection_lost(self) -> None:
        """The relay connection is gone: release everything locally."""
        if self.target_id is not None or self.peer is not None:
            self._status("Connection to relay lost; call ended.")
        await self._teardown()

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    def _start_call(self, role: CallRole) -> None:
        self.role = role
        self.peer = self._peer_factory()
        self.peer.on_ice_candidate = self._on_local_candidate
        if self._on_remote_track is not None:
            self.peer.on_track = self._on_remote_track

        for track in self.local_media.tracks():
            self.peer.add_track(track)

        self._transition(CallState.NEGOTIATING)
        if role is CallRole.OFFERER:
            self._spawn(self._send_offer())

    async def _send_offer(self) -> None:
        offer = await self.peer.create_offer()
        await self.peer.set_local_description(offer)
        self._local_description_set = True
        await self._send(
            {
                WS_KEY_TYPE: WS_MSG_OFFER,
                WS_MSG_OFFER: self.peer.local_description or offer,
                WS_KEY_TARGET_ID: self.target_id,
            }
        )
        self.logger.info(f"[{self.client_id}] Offer sent to {self.target_id}")
        self._check_established()

    async def _answer_offer(self, from_id: ClientId, offer: SessionDescription) -> None:
        await self.peer.set_remote_description(offer)
        await self._remote_description_applied()

        answer = await self.peer.create_answer()
        await self.peer.set_local_description(answer)
        self._local_description_set = True
        await self._send(
            {
                WS_KEY_TYPE: WS_MSG_ANSWER,
                WS_MSG_ANSWER: self.peer.local_description or answer,
                WS_KEY_TARGET_ID: from_id,
            }
        )
        self.logger.info(f"[{self.client_id}] Answer sent to {from_id}")
        self._check_established()

    async def _apply_answer(self, answer: SessionDescription) -> None:
        await self.peer.set_remote_description(answer)
        await self._remote_description_applied()
        self._check_established()

    async def _remote_description_applied(self) -> None:
        self._remote_description_set = True
        pending, self._pending_candidates = self._pending_candidates, []
        for candidate in pending:
            await self._add_candidate(candidate)

    async def _add_candidate(self, candidate: IceCandidate) -> None:
        try:
            await self.peer.add_ice_candidate(candidate)
        except Exception as e:
            self.logger.warning(f"[{self.client_id}] Failed to add candidate: {e}")

    async def _on_local_candidate(self, candidate: IceCandidate) -> None:
        if self.target_id is None:
            return
        await self._send(
            {
                WS_KEY_TYPE: WS_MSG_CANDIDATE,
                WS_MSG_CANDIDATE: candidate,
                WS_KEY_TARGET_ID: self.target_id,
            }
        )

    def _check_established(self) -> None:
        if (
            self.state is CallState.NEGOTIATING
            and self._local_description_set
            and self._remote_description_set
        ):
            self._transition(CallState.IN_CALL)
            self._status(f"Call connected with: {self.target_id}")

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(self._run_negotiation_step(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_negotiation_step(self, coro: Awaitable[None]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"[{self.client_id}] Negotiation failed: {e}", exc_info=True)
            self._status(f"Negotiation failed: {e}")
            await self.end_call()

    async def wait_for_negotiation(self) -> None:
        """Wait until every outstanding negotiation step has finished."""
        current = asyncio.current_task()
        while True:
            pending = [task for task in self._tasks if task is not current]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _accepts_signal_from(self, from_id: ClientId, message_type: str) -> bool:
        if self.peer is None or from_id != self.target_id:
            self.logger.warning(
                f"[{self.client_id}] Ignoring {message_type} from {from_id} (partner: {self.target_id})"
            )
            return False
        return True

    async def _teardown(self) -> None:
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        peer, self.peer = self.peer, None
        if peer is not None:
            try:
                await peer.close()
            except Exception as e:
                self.logger.error(f"[{self.client_id}] Error closing peer connection: {e}")
            self.logger.debug(f"[{self.client_id}] Peer connection closed")

        media, self.local_media = self.local_media, None
        if media is not None:
            try:
                await media.stop()
            except Exception as e:
                self.logger.error(f"[{self.client_id}] Error stopping local audio: {e}")
            self.logger.debug(f"[{self.client_id}] Local stream stopped")

        self._reset_call_state()

    def _reset_call_state(self) -> None:
        self.target_id = None
        self.role = None
        self._local_description_set = False
        self._remote_description_set = False
        self._pending_candidates = []
        self._transition(CallState.IDLE)

    def _transition(self, new_state: CallState) -> None:
        if new_state is not self.state:
            self.logger.debug(
                f"[{self.client_id}] {self.state.value} -> {new_state.value}"
            )
            self.state = new_state

    def _status(self, message: str) -> None:
        self.logger.info(f"[{self.client_id}] {message}")
        if self._on_status is not None:
            self._on_status(message)

    async def _send(self, message: Dict[str, Any]) -> None:
        await self._send_fn(message)

    @property
    def in_call(self) -> bool:
        return self.state in ACTIVE_CALL_STATES

    def get_status(self) -> Dict[str, Any]:
        """Get session status information."""
        return {
            "client_id": self.client_id,
            "state": self.state.value,
            "role": self.role.value if self.role else None,
            "target_id": self.target_id,
            "local_media_enabled": self.local_media is not None,
            "pending_candidates": len(self._pending_candidates),
        }
