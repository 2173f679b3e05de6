"""
Document Analysis Tools

Inlines documents (URLs, raw bytes, base64) into a prompt and asks the
reasoning model about them.
"""

import base64
import binascii
import json
import logging
from typing import Protocol, Union

from .registry import ToolDefinition, ToolName

logger = logging.getLogger(__name__)

INLINE_TRANSFORM = "#transform=inline"
DOCUMENT_PREFIXES = ("http", "data:")

Document = Union[str, bytes, bytearray]


class CompletionClient(Protocol):
    async def complete(self, messages: list[dict]) -> str: ...


def detect_mime_type(data: bytes) -> str:
    """Guess a MIME type from the file signature."""
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:4] == b"%PDF":
        return "application/pdf"
    return "application/octet-stream"


def prepare_document_inlining(document: Document) -> str:
    """
    Build the inline reference the model understands for a document.

    URLs get ``#transform=inline`` appended; raw bytes or a base64 string
    become a ``data:`` URI.

    Raises:
        ValueError: if the document is neither a URL, bytes nor base64
    """
    if isinstance(document, str):
        text = document.strip()
        if text.startswith("http"):
            return f"{text}{INLINE_TRANSFORM}"
        try:
            data = base64.b64decode(text, validate=True) if text else b""
        except (binascii.Error, ValueError):
            data = b""
        if not data:
            raise ValueError("Document must be a URL, bytes or a base64 string")
        return f"data:{detect_mime_type(data)};base64,{text}{INLINE_TRANSFORM}"
    if isinstance(document, (bytes, bytearray)):
        if not document:
            raise ValueError("Document must not be empty")
        encoded = base64.b64encode(bytes(document)).decode("ascii")
        return f"data:{detect_mime_type(bytes(document))};base64,{encoded}{INLINE_TRANSFORM}"
    raise ValueError("Document must be a URL, bytes or a base64 string")


class DocumentInliner:
    """Analyzes documents with a single-message model call."""

    def __init__(self, llm_client: CompletionClient):
        if llm_client is None:
            raise ValueError("An LLM client is required for DocumentInliner")
        self.llm_client = llm_client

    async def _ask(self, prompt: str) -> str:
        return await self.llm_client.complete([{"role": "user", "content": prompt}])

    async def analyze_document(self, document: Document, question: str) -> str:
        if not document:
            raise ValueError("Document is required for analysis")
        reference = prepare_document_inlining(document)
        prompt = f"Analyze this document and answer the following question: {question}\n\n{reference}"
        return await self._ask(prompt)

    async def analyze_multiple_documents(self, documents: list[Document], question: str) -> str:
        if not documents:
            raise ValueError("At least one document is required for multi-document analysis")
        references = [prepare_document_inlining(doc) for doc in documents]
        prompt = (
            f"Analyze these documents and answer the following question: {question}\n\n"
            + "\n\n".join(references)
        )
        return await self._ask(prompt)

    async def compare_documents(self, document_a: Document, document_b: Document, question: str) -> str:
        if not document_a or not document_b:
            raise ValueError("Both documents are required for comparison")
        prompt = (
            f"Compare these two documents and answer the following question: {question}\n\n"
            f"Document A:\n{prepare_document_inlining(document_a)}\n\n"
            f"Document B:\n{prepare_document_inlining(document_b)}"
        )
        return await self._ask(prompt)


def split_documents(value: str) -> list[str]:
    """Read a JSON array or a comma-separated list of documents."""
    value = value.strip()
    if value.startswith("["):
        try:
            items = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"documents is not a valid JSON array: {e}") from e
        return [str(item).strip() for item in items if str(item).strip()]
    documents: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        # a comma inside a URL or data URI continues the previous document
        if documents and documents[-1].startswith(DOCUMENT_PREFIXES) and not item.startswith(DOCUMENT_PREFIXES):
            documents[-1] = f"{documents[-1]},{item}"
        else:
            documents.append(item)
    return documents


class DocumentTools:
    """Adapts a DocumentInliner to the agent's tool interface."""

    def __init__(self, inliner: DocumentInliner):
        self.inliner = inliner

    async def _analyze(self, params: dict[str, str]) -> str:
        return await self.inliner.analyze_document(params.get("document", ""), params.get("question", ""))

    async def _analyze_multiple(self, params: dict[str, str]) -> str:
        documents = split_documents(params.get("documents", ""))
        return await self.inliner.analyze_multiple_documents(documents, params.get("question", ""))

    async def _compare(self, params: dict[str, str]) -> str:
        return await self.inliner.compare_documents(
            params.get("document_a", ""),
            params.get("document_b", ""),
            params.get("question", ""),
        )

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name=ToolName.DOCUMENT_ANALYZE.value,
                description="Answer a question about a document or image (URL or base64).",
                handler=self._analyze,
                parameters={
                    "document": "URL or base64 content of the document",
                    "question": "Question to answer",
                },
            ),
            ToolDefinition(
                name=ToolName.DOCUMENT_ANALYZE_MULTIPLE.value,
                description="Answer a question about several documents at once.",
                handler=self._analyze_multiple,
                parameters={
                    "documents": "JSON array of documents, or a comma-separated list of URLs",
                    "question": "Question to answer",
                },
            ),
            ToolDefinition(
                name=ToolName.DOCUMENT_COMPARE.value,
                description="Compare two documents and answer a question about their differences.",
                handler=self._compare,
                parameters={
                    "document_a": "First document URL or base64",
                    "document_b": "Second document URL or base64",
                    "question": "Question about the comparison",
                },
            ),
        ]
