"""Tests for the document XML parser."""

from lxml import etree

from tests.unit.samples import ID_CARD_XML, PASSPORT_XML, VAT_FORM_XML
from vosdroits_archive.core.parser.document_parser import (
    build_url,
    extract_full_text,
    find_root,
    parse_document,
)
from vosdroits_archive.models.document import DocumentKind, LegalReference, OnlineService


def test_parse_publication_metadata() -> None:
    doc = parse_document(PASSPORT_XML, "vosdroits/F1234.xml")
    assert doc is not None
    assert doc.id == "F1234"
    assert doc.kind is DocumentKind.PROCEDURE
    assert doc.title == "Passeport"
    assert doc.description == "Comment obtenir un passeport biométrique ?"
    assert doc.subject == "Papiers - Citoyenneté"
    assert doc.audience == "Particuliers"
    assert doc.last_modified == "modified 2024-03-01"
    assert doc.url == build_url("F1234")
    assert doc.url.endswith("/F1234")


def test_parse_breadcrumbs() -> None:
    doc = parse_document(PASSPORT_XML, "F1234.xml")
    assert doc is not None
    assert (doc.theme_id, doc.theme_title) == ("N19810", "Papiers - Citoyenneté")
    assert doc.subtheme == "Identité"
    assert (doc.folder_id, doc.folder_title) == ("N358", "Passeport")


def test_parse_references_services_and_links() -> None:
    doc = parse_document(PASSPORT_XML, "F1234.xml")
    assert doc is not None
    assert doc.legal_references == (
        LegalReference(
            title="Décret n°2005-1726 relatif aux passeports",
            url="https://www.legifrance.gouv.fr/loda/id/JORFTEXT000000",
            legifrance_id="JORFTEXT000000",
        ),
    )
    assert doc.online_services == (
        OnlineService(
            id="R1234",
            title="Pré-demande de passeport",
            type="Téléservice",
            url="https://passeport.ants.gouv.fr",
        ),
    )
    # Duplicates dropped, first-seen order kept.
    assert doc.internal_links == ("F5678", "F9999")


def test_full_text_has_body_but_no_attributes() -> None:
    doc = parse_document(PASSPORT_XML, "F1234.xml")
    assert doc is not None
    assert "La demande de passeport se fait en mairie." in doc.full_text
    assert "déclaration de perte" in doc.full_text
    assert "legifrance" not in doc.full_text
    assert "  " not in doc.full_text


def test_resource_with_audience_attribute() -> None:
    doc = parse_document(VAT_FORM_XML, "R42.xml")
    assert doc is not None
    assert doc.kind is DocumentKind.RESOURCE
    assert doc.audience == "Professionnels"
    assert doc.theme_id == "N24267"
    assert doc.folder_id is None
    assert doc.legal_references == ()
    assert doc.online_services == ()


def test_missing_subtheme_leaves_field_empty() -> None:
    doc = parse_document(ID_CARD_XML, "F5678.xml")
    assert doc is not None
    assert doc.subtheme is None
    assert doc.folder_title == "Carte d'identité"


def test_untyped_breadcrumb_falls_back_to_first_level() -> None:
    xml = b"""<Publication ID="F1"><Titre>T</Titre>
        <FilDAriane><Niveau ID="N1">Premier</Niveau><Niveau ID="N2">Second</Niveau></FilDAriane>
    </Publication>"""
    doc = parse_document(xml, "F1.xml")
    assert doc is not None
    assert doc.theme_id == "N1"
    assert doc.theme_title is None


def test_title_falls_back_to_id() -> None:
    doc = parse_document(b"<Publication><Texte>Hello</Texte></Publication>", "F77.xml")
    assert doc is not None
    assert doc.title == "F77"
    assert doc.full_text == "Hello"


def test_root_found_inside_wrapper_element() -> None:
    xml = b"<Wrapper><Meta>x</Meta><Noeud ID='N5'><Titre>Demarches</Titre></Noeud></Wrapper>"
    doc = parse_document(xml, "N5.xml")
    assert doc is not None
    assert doc.kind is DocumentKind.NODE
    assert doc.title == "Demarches"


def test_find_root_prefers_priority_order() -> None:
    root = etree.fromstring(b"<Root><Ressource/><Publication/></Root>")
    found = find_root(root)
    assert found is not None
    assert found.tag == "Publication"


def test_unknown_root_uses_document_element() -> None:
    doc = parse_document(b"<Autre><Titre>Divers</Titre></Autre>", "X9.xml")
    assert doc is not None
    assert doc.kind is DocumentKind.OTHER
    assert doc.title == "Divers"


def test_unparseable_content_returns_none() -> None:
    assert parse_document(b"", "F1.xml") is None
    assert parse_document(b"\x00\x01 definitely not xml", "F2.xml") is None


def test_recovers_from_malformed_markup() -> None:
    doc = parse_document(b"<Publication><Titre>Ouvert</Titre><Texte>sans fin", "F3.xml")
    assert doc is not None
    assert doc.title == "Ouvert"


def test_full_text_depth_is_bounded() -> None:
    depth = 40
    xml = "<a>" * depth + "deep" + "</a>" * depth
    root = etree.fromstring(xml.encode())
    assert extract_full_text(root) == ""
    assert extract_full_text(root[0][0]) == ""
    shallow = etree.fromstring(b"<a><b>one</b> two <c>three</c></a>")
    assert extract_full_text(shallow) == "one two three"
