"""Tests for the theme menu parser."""

from tests.unit.samples import MENU_XML
from vosdroits_archive.core.parser.hierarchy_parser import parse_hierarchy
from vosdroits_archive.models.document import ThemeKind, ThemeNode


def test_menu_is_flattened_depth_first() -> None:
    themes = parse_hierarchy(MENU_XML)
    assert themes == [
        ThemeNode("N19810", ThemeKind.THEME, "Papiers - Citoyenneté", None),
        ThemeNode("N360", ThemeKind.SUBTHEME, "Identité", "N19810"),
        ThemeNode("N358", ThemeKind.FOLDER, "Passeport", "N360"),
        ThemeNode("N359", ThemeKind.FOLDER, "Carte d'identité", "N360"),
        ThemeNode("N24267", ThemeKind.THEME, "Argent - Impôts", None),
    ]


def test_kind_falls_back_to_nesting_level() -> None:
    xml = b"""<Menu>
        <ItemMenu ID="A"><Titre>a</Titre>
            <ItemMenu ID="B"><Titre>b</Titre>
                <ItemMenu ID="C"><Titre>c</Titre>
                    <ItemMenu ID="D"><Titre>d</Titre></ItemMenu>
                </ItemMenu>
            </ItemMenu>
        </ItemMenu>
    </Menu>"""
    themes = parse_hierarchy(xml)
    assert themes is not None
    assert [t.kind for t in themes] == [
        ThemeKind.THEME,
        ThemeKind.SUBTHEME,
        ThemeKind.FOLDER,
        ThemeKind.SUBFOLDER,
    ]


def test_nesting_deeper_than_four_levels_is_cut() -> None:
    xml = (
        b"<Menu>"
        + b"".join(f'<ItemMenu ID="L{i}">'.encode() for i in range(6))
        + b"</ItemMenu>" * 6
        + b"</Menu>"
    )
    themes = parse_hierarchy(xml)
    assert themes is not None
    assert [t.id for t in themes] == ["L0", "L1", "L2", "L3"]


def test_item_without_id_is_skipped_with_its_subtree() -> None:
    xml = b"""<Menu>
        <ItemMenu><Titre>orphan</Titre><ItemMenu ID="X"><Titre>x</Titre></ItemMenu></ItemMenu>
        <ItemMenu ID="Y">Plain title</ItemMenu>
    </Menu>"""
    themes = parse_hierarchy(xml)
    assert themes == [ThemeNode("Y", ThemeKind.THEME, "Plain title", None)]


def test_unparseable_menu_returns_none() -> None:
    assert parse_hierarchy(b"") is None
    assert parse_hierarchy(b"<NotAMenu/>") is None


def test_empty_menu_gives_empty_list() -> None:
    assert parse_hierarchy(b"<Menu/>") == []
