"""Tests for markdown rendering of documents."""

from tests.unit.samples import PASSPORT_XML, VAT_FORM_XML
from vosdroits_archive.core.parser.document_parser import parse_document
from vosdroits_archive.core.tree.markdown import render_document_as_markdown
from vosdroits_archive.models.document import NormalizedDocument


def _passport() -> NormalizedDocument:
    doc = parse_document(PASSPORT_XML, "F1234.xml")
    assert doc is not None
    return doc


def test_render_includes_metadata_and_sections() -> None:
    md = render_document_as_markdown(_passport())
    assert md.startswith("# Passeport\n")
    assert "*procedure | Particuliers | Papiers - Citoyenneté > Identité > Passeport*" in md
    assert "Source: https://www.service-public.fr/particuliers/vosdroits/F1234" in md
    assert "> Comment obtenir un passeport biométrique ?" in md
    assert "La demande de passeport se fait en mairie." in md
    assert "## Legal references" in md
    assert (
        "- [Décret n°2005-1726 relatif aux passeports]"
        "(https://www.legifrance.gouv.fr/loda/id/JORFTEXT000000)"
    ) in md
    assert "- [Pré-demande de passeport](https://passeport.ants.gouv.fr) (Téléservice)" in md
    assert "## See also\n\nF5678, F9999" in md


def test_render_truncates_body() -> None:
    doc = _passport()
    md = render_document_as_markdown(doc, max_chars=20)
    assert f"(truncated, {len(doc.full_text)} chars)" in md
    assert "déclaration de perte" not in md


def test_render_omits_empty_sections() -> None:
    doc = parse_document(VAT_FORM_XML, "R42.xml")
    assert doc is not None
    md = render_document_as_markdown(doc)
    assert "## Legal references" not in md
    assert "## Online services" not in md
    assert "## See also" not in md
    assert md.endswith("\n")
