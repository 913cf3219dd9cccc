"""PDF documents for question answering: validation, upload and readiness polling."""
import logging
import time
from pathlib import Path

from auralearn.chat import Conversation, new_message_id
from auralearn.errors import DocumentError
from auralearn.models import ChatMessage, UploadedDocument

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
UPLOAD_TIMEOUT_SECONDS = 300


def read_pdf(file_path: str) -> int:
    """Check that the file is a readable PDF and return its page count."""
    path = Path(file_path)
    if not path.is_file():
        raise DocumentError(f"File not found: {file_path}")
    if path.suffix.lower() != ".pdf":
        raise DocumentError("Please upload a valid PDF file.")
    from PyPDF2 import PdfReader
    try:
        reader = PdfReader(str(path))
        pages = len(reader.pages)
    except Exception as e:
        logger.warning("Could not parse %s: %s", path.name, e)
        raise DocumentError("Failed to parse PDF. The file might be corrupted.") from e
    if pages == 0:
        raise DocumentError("The PDF has no pages.")
    return pages


def _state_name(remote_file) -> str:
    state = getattr(remote_file, "state", None)
    return getattr(state, "name", str(state))


def upload_document(
    service,
    file_path: str,
    poll_interval: float = 3.0,
    sleep=time.sleep,
    timeout: float = UPLOAD_TIMEOUT_SECONDS,
) -> UploadedDocument:
    """Upload a PDF and wait until the service has finished processing it."""
    if poll_interval <= 0:
        raise ValueError(f"poll_interval must be positive, got {poll_interval}")
    read_pdf(file_path)
    display_name = Path(file_path).name
    remote = service.upload_file(file_path, display_name)
    logger.info("Uploaded %s as %s", display_name, remote.name)

    waited = 0.0
    while _state_name(remote) == "PROCESSING":
        if waited >= timeout:
            raise DocumentError("The document is taking too long to process. Please try again.")
        sleep(poll_interval)
        waited += poll_interval
        remote = service.get_file(remote.name)
        logger.debug("%s state: %s", remote.name, _state_name(remote))

    if _state_name(remote) != "ACTIVE" or not getattr(remote, "uri", None):
        raise DocumentError("The server failed to process the document. Please upload it again.")
    return UploadedDocument(
        name=remote.name,
        display_name=display_name,
        uri=remote.uri,
        mime_type=getattr(remote, "mime_type", None) or PDF_MIME_TYPE,
    )


def start_document_conversation(conversation: Conversation, document: UploadedDocument) -> None:
    """Replace the conversation with a fresh one about the given document."""
    greeting = ChatMessage(
        id=new_message_id(),
        role="model",
        text=f'I\'ve finished reading "{document.display_name}". What would you like to know?',
    )
    conversation.reset([greeting])
