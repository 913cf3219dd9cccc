"""Chat conversations and streaming reply accumulation."""
import asyncio
import logging
import uuid
from typing import AsyncIterator, Callable, Optional

from auralearn.errors import ChatBusyError, ValidationError
from auralearn.models import ChatMessage, Fragment

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't come up with a response. Please try again."
ERROR_REPLY = "⚠️ Sorry, an error occurred."

UpdateCallback = Callable[[ChatMessage], None]


def new_message_id() -> str:
    return uuid.uuid4().hex


class Conversation:
    """Ordered message list plus an epoch that changes when the context is replaced.

    A reply stream captures the epoch when it starts; once the epoch moves on,
    that stream may no longer write into the list.
    """

    def __init__(self, messages: Optional[list] = None):
        self.messages = list(messages or [])
        self.epoch = 0
        self.busy = False

    def reset(self, messages: Optional[list] = None) -> None:
        self.messages = list(messages or [])
        self.epoch += 1
        self.busy = False

    def is_current(self, token: int) -> bool:
        return self.epoch == token

    def history(self) -> list:
        """Messages with text, in order, as sent to the model."""
        return [m for m in self.messages if m.text]


def add_user_message(conversation: Conversation, text: str) -> ChatMessage:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Please type a message.")
    if conversation.busy:
        raise ChatBusyError("Wait for the current reply to finish.")
    message = ChatMessage(id=new_message_id(), role="user", text=text)
    conversation.messages.append(message)
    return message


async def accumulate_reply(
    conversation: Conversation,
    fragments: AsyncIterator[Fragment],
    on_update: Optional[UpdateCallback] = None,
) -> ChatMessage:
    """Stream fragments into a new model message on the conversation.

    The empty placeholder is appended and reported before the first fragment
    is awaited. Text deltas are appended, citation lists replace earlier ones.
    A stream that yields no text ends with FALLBACK_REPLY and one that raises
    ends with ERROR_REPLY, as does a cancelled one before the cancellation
    propagates. If the conversation is reset mid-stream, later fragments are
    dropped.
    """
    if conversation.busy:
        raise ChatBusyError("Wait for the current reply to finish.")

    token = conversation.epoch
    message = ChatMessage(id=new_message_id(), role="model", text="")
    conversation.messages.append(message)
    conversation.busy = True
    notify = on_update or (lambda m: None)
    notify(message)

    text = ""
    try:
        async for fragment in fragments:
            if not conversation.is_current(token):
                logger.info("Dropping reply for superseded conversation %d", token)
                break
            if fragment.text:
                text += fragment.text
                message.text = text
            if fragment.sources is not None:
                message.sources = list(fragment.sources)
            notify(message)
        else:
            if not text and conversation.is_current(token):
                message.text = FALLBACK_REPLY
                notify(message)
    except asyncio.CancelledError:
        logger.info("Reply stream cancelled")
        if conversation.is_current(token):
            message.text = ERROR_REPLY
            notify(message)
        raise
    except Exception:
        logger.exception("Reply stream failed")
        if conversation.is_current(token):
            message.text = ERROR_REPLY
            notify(message)
    finally:
        aclose = getattr(fragments, "aclose", None)
        if aclose is not None:
            await aclose()
        if conversation.is_current(token):
            conversation.busy = False
    return message
