import pytest

from gameshelf_app.metadata.infobox import (
    canonical_field,
    clean_value,
    find_infobox,
    normalize_date,
    parse_infobox,
    split_parameters,
)


@pytest.mark.parametrize("raw, expected", [
    ("March 3, 2017", "2017-03-03"),
    ("3 March 2017", "2017-03-03"),
    ("Sept. 9, 1995", "1995-09-09"),
    ("March 2017", "2017-03-01"),
    ("2017", "2017-01-01"),
    ("2017-03-03", "2017-03-03"),
    ("TBA", "TBA"),
])
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("[[Nintendo]]", "Nintendo"),
    ("[[Nintendo EPD|EPD]]", "EPD"),
    ("[https://www.celestegame.com Official site]", "Official site"),
    ("{{nowrap|Matt Makes Games}}", "Matt Makes Games"),
    ("{{ubl|[[Wii U]]|[[Nintendo Switch]]}}", "Wii U, Nintendo Switch"),
    ("[[Wii U]]<br>[[Nintendo Switch]]", "Wii U, Nintendo Switch"),
    ("Nintendo<ref name=\"a\">{{cite web|url=http://x}}</ref>", "Nintendo"),
    ("Nintendo<ref name=\"a\" />", "Nintendo"),
    ("{{Start date|2017|3|3}}", "2017-03-03"),
    ("''[[Doom (franchise)|Doom]]''", "Doom"),
    ("Bandai Namco &amp; FromSoftware<!-- hidden -->", "Bandai Namco & FromSoftware"),
    ("Nintendo[1]", "Nintendo"),
])
def test_clean_value(raw, expected):
    assert clean_value(raw) == expected


def test_canonical_field_aliases():
    assert canonical_field(" Released ") == "release_date"
    assert canonical_field("release_date") == "release_date"
    assert canonical_field("developers") == "developer"
    assert canonical_field("caption") is None


def test_split_parameters_respects_nesting():
    body = "| title = Doom | platforms = {{ubl|PC|DOS}} | developer = [[id Software|id]]"

    assert [p.strip() for p in split_parameters(body)] == [
        "title = Doom",
        "platforms = {{ubl|PC|DOS}}",
        "developer = [[id Software|id]]",
    ]


def test_find_infobox_matches_braces():
    wikitext = "Intro {{Infobox_video_game\n| title = {{nowrap|Doom}}\n| genre = Shooter\n}} Body {{Other}}"

    body = find_infobox(wikitext)

    assert body.strip().endswith("genre = Shooter")
    assert "Other" not in body


def test_parse_infobox_first_field_wins():
    wikitext = """{{Infobox video game
| developer = [[id Software]]
| developers = Someone Else
| platform = [[MS-DOS]], [[Microsoft Windows|Windows]]
| genre = [[First-person shooter]]
| release = December 10, 1993
| writer = [[Tom Hall]]
}}"""

    fields = parse_infobox(wikitext)

    assert fields["developer"] == "id Software"
    assert fields["platforms"] == ["MS-DOS", "Windows"]
    assert fields["genre"] == ["First-person shooter"]
    assert fields["release_date"] == "1993-12-10"
    assert fields["writer"] == "Tom Hall"


def test_parse_infobox_without_template():
    assert parse_infobox("'''Doom''' is a 1993 video game.") == {}
    assert parse_infobox("") == {}


@pytest.mark.parametrize("platforms", [
    "{{Plainlist|\n* [[Microsoft Windows|Windows]]\n* [[Nintendo Switch]]\n* [[PlayStation 4]]}}",
    "{{flatlist|\n* [[Microsoft Windows|Windows]]\n* [[Nintendo Switch]]\n* [[PlayStation 4]]\n}}",
    "\n* [[Microsoft Windows|Windows]]\n* [[Nintendo Switch]]\n* [[PlayStation 4]]",
    "\n# [[Microsoft Windows|Windows]]\n# [[Nintendo Switch]]\n# [[PlayStation 4]]",
])
def test_bulleted_lists_split_into_items(platforms):
    wikitext = "{{Infobox video game\n| platforms = " + platforms + "\n| genre = [[Platform game|Platform]]\n}}"

    fields = parse_infobox(wikitext)

    assert fields["platforms"] == ["Windows", "Nintendo Switch", "PlayStation 4"]
    assert fields["genre"] == ["Platform"]


def test_bulleted_names_join_with_commas():
    assert clean_value("{{Plainlist|\n* [[Maddy Makes Games]]\n* Extremely OK Games}}") == (
        "Maddy Makes Games, Extremely OK Games"
    )
