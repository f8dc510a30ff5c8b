"""
Conversation Orchestrator

Entry point from the transport into the agent. Resolves the session of an
inbound message, runs the dispatch loop for text, answers attachments with a
fixed reply, and persists the resulting context.

Each message runs as its own asyncio task so the webhook can acknowledge the
delivery immediately. handle_message() is the single error boundary: nothing
it runs can escape into the event loop.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Set

from agent.dispatch import DispatchLoop, DispatchResult
from agent.errors import AgentError
from agent.session import SessionStore
from transport.messenger.schemas import InboundMessage
from transport.messenger.sender import MessengerSender, TransportError

logger = logging.getLogger(__name__)

ATTACHMENT_REPLY = "Sorry I can only process text messages for now."


class ConversationOrchestrator:
    """
    Public API for handing inbound messages to the agent.

    Args:
        sessions: Session store owned by the application
        dispatcher: Dispatch loop bound to the engine and action registry
        sender: Outbound transport, used for the attachment reply
        serialize_turns: Run overlapping turns of one session one at a time
    """

    def __init__(
        self,
        sessions: SessionStore,
        dispatcher: DispatchLoop,
        sender: MessengerSender,
        serialize_turns: bool = True,
        attachment_reply: str = ATTACHMENT_REPLY,
    ):
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.sender = sender
        self.serialize_turns = serialize_turns
        self.attachment_reply = attachment_reply
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, messages: Iterable[InboundMessage]) -> List[asyncio.Task]:
        """
        Schedule each message on its own task and return immediately.

        Task references are kept until completion so they are not garbage
        collected mid-flight.
        """
        tasks = []
        for message in messages:
            task = asyncio.create_task(
                self.handle_message(message),
                name=f"dispatch:{message.sender_id}:{message.message_id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight messages; used on shutdown."""
        if not self._tasks:
            return
        done, not_done = await asyncio.wait(set(self._tasks), timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} dispatch task(s) still running after drain")

    async def handle_message(self, message: InboundMessage) -> Optional[DispatchResult]:
        """
        Process one inbound message end to end.

        Returns:
            DispatchResult for text messages, None otherwise (attachments,
            echoes, empty messages, or an unexpected failure)
        """
        try:
            return await self._handle(message)
        except AgentError as e:
            logger.error(
                f"Agent error while handling message: {e}",
                extra={"sender_id": message.sender_id, "message_id": message.message_id},
            )
        except Exception as e:
            logger.error(
                f"Unexpected error while handling message: {e}",
                exc_info=True,
                extra={"sender_id": message.sender_id, "message_id": message.message_id},
            )
        return None

    async def _handle(self, message: InboundMessage) -> Optional[DispatchResult]:
        if message.is_echo:
            logger.debug(f"Skipping echo of page message {message.message_id}")
            return None

        if not message.has_attachments and not message.has_text:
            logger.info(
                "Dropping message without text or attachments",
                extra={"sender_id": message.sender_id, "message_id": message.message_id},
            )
            return None

        session = await self.sessions.resolve_or_create(message.sender_id)

        if message.has_attachments:
            await self._reply_to_attachment(message)
            return None

        logger.info(
            f"Received message from {message.sender_id}: {message.text[:50]}",
            extra={"session_id": session.session_id, "message_id": message.message_id},
        )

        if self.serialize_turns:
            async with self.sessions.turn_lock(session.session_id):
                return await self._dispatch(session.session_id, message.text)
        return await self._dispatch(session.session_id, message.text)

    async def _dispatch(self, session_id: str, text: str) -> DispatchResult:
        # Re-read under the turn lock so a queued turn sees the previous result
        session = self.sessions.get(session_id)
        result = await self.dispatcher.run(session, text)

        if result.completed:
            self.sessions.update(session_id, result.context)
            logger.info(
                "Waiting for next user messages",
                extra={"session_id": session_id, "actions": result.actions},
            )
        else:
            logger.error(
                f"Turn failed, context not persisted: {result.error}",
                extra={"session_id": session_id, "actions": result.actions},
            )
        return result

    async def _reply_to_attachment(self, message: InboundMessage) -> None:
        logger.info(
            "Received attachment, sending automatic reply",
            extra={
                "sender_id": message.sender_id,
                "attachment_types": [a.type for a in message.attachments],
            },
        )
        try:
            await self.sender.send_text(message.sender_id, self.attachment_reply)
        except TransportError as e:
            logger.error(f"Failed to send attachment reply to {message.sender_id}: {e}")
