"""Tests for document inlining and analysis."""

import base64

import pytest

from intellibrowse.tools.document import (
    DocumentInliner,
    DocumentTools,
    detect_mime_type,
    prepare_document_inlining,
    split_documents,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8
PDF_BYTES = b"%PDF-1.7\n"


class RecordingClient:
    """LLM client stub that records prompts."""

    def __init__(self, reply="analysis"):
        self.reply = reply
        self.messages = []

    async def complete(self, messages, **kwargs):
        self.messages.append(messages)
        return self.reply


class TestDetectMimeType:
    """Tests for signature-based MIME detection."""

    def test_known_signatures(self):
        assert detect_mime_type(b"\xff\xd8\xff\xe0") == "image/jpeg"
        assert detect_mime_type(PNG_BYTES) == "image/png"
        assert detect_mime_type(PDF_BYTES) == "application/pdf"

    def test_unknown_and_short(self):
        assert detect_mime_type(b"GIF89a") == "application/octet-stream"
        assert detect_mime_type(b"") == "application/octet-stream"


class TestPrepareDocumentInlining:
    """Tests for prepare_document_inlining."""

    def test_url(self):
        """URLs get the inline transform fragment."""
        assert prepare_document_inlining("https://example.com/report.pdf") == (
            "https://example.com/report.pdf#transform=inline"
        )

    def test_bytes(self):
        """Bytes become a data URI with the detected type."""
        expected = base64.b64encode(PDF_BYTES).decode()
        assert prepare_document_inlining(PDF_BYTES) == (
            f"data:application/pdf;base64,{expected}#transform=inline"
        )

    def test_base64_string(self):
        """A base64 string is wrapped as a data URI."""
        encoded = base64.b64encode(PNG_BYTES).decode()
        assert prepare_document_inlining(encoded) == f"data:image/png;base64,{encoded}#transform=inline"

    def test_rejects_other_values(self):
        """Plain text and other types are rejected."""
        with pytest.raises(ValueError):
            prepare_document_inlining("just some words")
        with pytest.raises(ValueError):
            prepare_document_inlining(42)
        with pytest.raises(ValueError):
            prepare_document_inlining(b"")


class TestDocumentInliner:
    """Tests for DocumentInliner prompts."""

    async def test_analyze_document_prompt(self):
        """A single user message carries the question and reference."""
        client = RecordingClient()
        inliner = DocumentInliner(client)

        result = await inliner.analyze_document("https://example.com/a.pdf", "What is the total?")

        assert result == "analysis"
        assert client.messages == [[{
            "role": "user",
            "content": (
                "Analyze this document and answer the following question: What is the total?\n\n"
                "https://example.com/a.pdf#transform=inline"
            ),
        }]]

    async def test_analyze_multiple_documents_prompt(self):
        """References are separated by blank lines."""
        client = RecordingClient()
        await DocumentInliner(client).analyze_multiple_documents(
            ["https://a.example/1.pdf", "https://a.example/2.pdf"], "Summarize"
        )
        assert client.messages[0][0]["content"] == (
            "Analyze these documents and answer the following question: Summarize\n\n"
            "https://a.example/1.pdf#transform=inline\n\n"
            "https://a.example/2.pdf#transform=inline"
        )

    async def test_compare_documents_prompt(self):
        """Comparisons label the two documents."""
        client = RecordingClient()
        await DocumentInliner(client).compare_documents(
            "https://a.example/old.pdf", "https://a.example/new.pdf", "What changed?"
        )
        assert client.messages[0][0]["content"] == (
            "Compare these two documents and answer the following question: What changed?\n\n"
            "Document A:\nhttps://a.example/old.pdf#transform=inline\n\n"
            "Document B:\nhttps://a.example/new.pdf#transform=inline"
        )

    async def test_missing_documents(self):
        """Missing inputs are rejected before calling the model."""
        client = RecordingClient()
        inliner = DocumentInliner(client)
        with pytest.raises(ValueError, match="Document is required"):
            await inliner.analyze_document("", "q")
        with pytest.raises(ValueError, match="At least one document"):
            await inliner.analyze_multiple_documents([], "q")
        with pytest.raises(ValueError, match="Both documents"):
            await inliner.compare_documents("https://a.example", "", "q")
        assert client.messages == []

    def test_requires_client(self):
        with pytest.raises(ValueError):
            DocumentInliner(None)


class TestDocumentTools:
    """Tests for the document tool adapter."""

    def test_split_documents(self):
        """Documents may be a JSON array or comma-separated."""
        assert split_documents('["https://a", "https://b"]') == ["https://a", "https://b"]
        assert split_documents("https://a, https://b ,") == ["https://a", "https://b"]
        with pytest.raises(ValueError):
            split_documents("[not json")

    def test_split_keeps_commas_inside_urls(self):
        """A comma within a URL does not start a new document."""
        assert split_documents("https://a.example/x?ids=1,2, https://b.example/y") == [
            "https://a.example/x?ids=1,2",
            "https://b.example/y",
        ]

    async def test_tool_names_and_dispatch(self):
        """Each tool routes to the matching inliner method."""
        client = RecordingClient("compared")
        tools = {d.name: d for d in DocumentTools(DocumentInliner(client)).definitions()}

        assert list(tools) == ["document.analyze", "document.analyzeMultiple", "document.compare"]
        result = await tools["document.compare"].invoke({
            "document_a": "https://a.example/1",
            "document_b": "https://a.example/2",
            "question": "Differences?",
        })
        assert result == "compared"

    async def test_analyze_multiple_parses_list(self):
        """A comma-separated documents param is split."""
        client = RecordingClient()
        tools = {d.name: d for d in DocumentTools(DocumentInliner(client)).definitions()}

        await tools["document.analyzeMultiple"].invoke({
            "documents": "https://a.example/1, https://a.example/2",
            "question": "q",
        })
        assert client.messages[0][0]["content"].count("#transform=inline") == 2
