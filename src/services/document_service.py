from __future__ import annotations

from pathlib import Path

from langchain_community.document_loaders import PyMuPDFLoader


def load_pdf_text(path: str | Path) -> str:
	"""Extract the text layer of a PDF with PyMuPDF, one page per block."""
	docs = PyMuPDFLoader(str(path)).load()
	return "\n".join((d.page_content or "") for d in docs).strip()


def load_document_text(path: str | Path) -> str:
	"""Load a policy/procedure document as plain text.

	PDFs go through PyMuPDF; anything else is read as UTF-8 text. Scanned PDFs
	without a text layer come back empty and are rejected by the analysis step.
	"""
	p = Path(path)
	if p.suffix.lower() == ".pdf":
		return load_pdf_text(p)
	return p.read_text(encoding="utf-8", errors="replace").strip()
