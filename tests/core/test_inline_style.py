import lxml.html
import pytest

from quill_toolkit.core.converter import css_color_to_hex, derive_style
from quill_toolkit.core.converter.inline_style import LINK_COLOR, MONOSPACE_FONT
from quill_toolkit.core.models import PLAIN, StyleFlags


def element(markup):
    return lxml.html.fragment_fromstring(markup)


class TestTagFlags:
    """Formatting implied by the element tag."""

    @pytest.mark.parametrize("markup, attribute", [
        ("<strong>x</strong>", "bold"),
        ("<b>x</b>", "bold"),
        ("<em>x</em>", "italics"),
        ("<i>x</i>", "italics"),
        ("<u>x</u>", "underline"),
        ("<s>x</s>", "strike"),
        ("<del>x</del>", "strike"),
        ("<sup>x</sup>", "super_script"),
        ("<sub>x</sub>", "sub_script"),
    ])
    def test_flag_set(self, markup, attribute):
        assert getattr(derive_style(element(markup), PLAIN), attribute) is True

    def test_code_uses_monospace_font(self):
        assert derive_style(element("<code>x</code>"), PLAIN).font == MONOSPACE_FONT

    def test_links_are_blue_and_underlined(self):
        style = derive_style(element('<a href="#">x</a>'), PLAIN)
        assert style.underline and style.color == LINK_COLOR

    def test_link_keeps_inherited_color(self):
        style = derive_style(element('<a href="#">x</a>'), StyleFlags(color="FF0000"))
        assert style.color == "FF0000"

    def test_superscript_clears_subscript(self):
        style = derive_style(element("<sup>x</sup>"), StyleFlags(sub_script=True))
        assert style.super_script and not style.sub_script


class TestStyleDeclarations:
    """Only weight, style, decoration and colour declarations are honoured."""

    def test_numeric_font_weight(self):
        assert derive_style(element('<span style="font-weight: 700">x</span>'), PLAIN).bold
        assert not derive_style(element('<span style="font-weight: 400">x</span>'), PLAIN).bold

    def test_font_style_and_decoration(self):
        style = derive_style(
            element('<span style="font-style: italic; text-decoration: underline line-through">x</span>'),
            PLAIN,
        )
        assert style.italics and style.underline and style.strike

    def test_color(self):
        style = derive_style(element('<span style="color: rgb(255, 0, 16)">x</span>'), PLAIN)
        assert style.color == "FF0010"

    def test_unsupported_properties_return_inherited(self):
        inherited = StyleFlags(bold=True)
        result = derive_style(element('<span style="font-size: 20px; color: red">x</span>'), inherited)
        assert result is inherited

    def test_inherited_flags_not_mutated(self):
        parent = StyleFlags(bold=True)
        child = derive_style(element("<em>x</em>"), parent)
        assert child.bold and child.italics
        assert parent.italics is False


class TestColors:
    """CSS colour literals."""

    def test_short_hex(self):
        assert css_color_to_hex("#1a2") == "11AA22"

    def test_long_hex(self):
        assert css_color_to_hex("#1155cc") == "1155CC"

    def test_rgba(self):
        assert css_color_to_hex("rgba(0, 128, 255, 0.5)") == "0080FF"

    def test_unsupported(self):
        assert css_color_to_hex("hsl(0, 100%, 50%)") is None
        assert css_color_to_hex("") is None


class TestStyleFlags:
    """StyleFlags invariants."""

    def test_super_and_sub_are_exclusive(self):
        with pytest.raises(ValueError):
            StyleFlags(super_script=True, sub_script=True)

    def test_merged_returns_copy(self):
        base = StyleFlags()
        assert base.merged(bold=True) is not base
        assert base.bold is False
