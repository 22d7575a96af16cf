"""Tests for input normalization and synonym resolution."""

import pytest

from ifengine.core.errors import InputError
from ifengine.core.parser import parse


def test_multi_word_synonyms():
    cmd = parse("pick up lamp")
    assert (cmd.verb, cmd.noun) == ("take", "lamp")
    cmd = parse("look at the keeper")
    assert (cmd.verb, cmd.noun) == ("inspect", "the keeper")


def test_search_for_keeps_object_phrase():
    cmd = parse("search for traps")
    assert cmd.verb == "search"
    assert cmd.noun == "for traps"


def test_single_word_synonyms():
    assert parse("grab lamp").verb == "take"
    assert parse("x lamp").verb == "inspect"
    assert parse("i").verb == "inventory"
    assert parse("talk to keeper").verb == "speak"


def test_bare_direction_becomes_go():
    cmd = parse("n")
    assert (cmd.verb, cmd.noun) == ("go", "north")
    cmd = parse("down")
    assert (cmd.verb, cmd.noun) == ("go", "down")


def test_go_strips_to_and_expands_abbreviation():
    assert parse("go to e").noun == "east"
    assert parse("walk west").noun == "west"


def test_whitespace_and_case_are_normalized():
    cmd = parse("   TAKE    Lamp ")
    assert cmd.verb == "take"
    assert cmd.noun == "lamp"
    assert cmd.text == "take lamp"


def test_unknown_verb_passes_through():
    cmd = parse("decipher glyphs")
    assert cmd.verb == "decipher"
    assert cmd.noun == "glyphs"


@pytest.mark.parametrize("bad", ["", "   ", None, 42])
def test_invalid_input_raises(bad):
    with pytest.raises(InputError):
        parse(bad)
