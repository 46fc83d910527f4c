import json

import pytest

from gameshelf_app.library import (
    DuplicateGameError,
    GameLibrary,
    GameNotFoundError,
    InvalidGameError,
)
from gameshelf_app.log import MSG_QUEUE_SIZE, drain_messages, log
from gameshelf_app.metadata.models import RankedResult


@pytest.fixture
def ranked_botw(wikidata_game, with_confidence):
    game = wikidata_game(
        platforms=["Nintendo Switch", "Wii U"],
        developer="Nintendo EPD",
        publisher="Nintendo",
        official_store_links={
            "steam": None, "playstation": None, "xbox": None, "epic": None, "gog": None,
            "nintendo": "https://www.nintendo.com/store/products/zelda",
        },
    )
    return RankedResult.from_candidate(with_confidence(game, 0.76, query="Breath of the Wild"), rank=1)


def test_add_search_result_keeps_provenance(ranked_botw):
    library = GameLibrary()

    game = library.add_game(ranked_botw)

    assert game["id"].startswith("game_")
    assert game["title"] == "The Legend of Zelda: Breath of the Wild"
    assert game["wikidata_id"] == "Q22101565"
    assert game["data_source"]["primary"] == "wikidata"
    assert game["official_store_links"]["nintendo"] == "https://www.nintendo.com/store/products/zelda"
    assert game["search_metadata"]["confidence"] == 0.76
    assert game["source"] == "wikidata"
    assert "rank" not in game
    assert game["user_metadata"]["completion_status"] == "not_started"
    assert game["user_metadata"]["rating"] == 0
    assert game["user_metadata"]["tags"] == []
    assert game["user_metadata"]["favorite"] is False


def test_add_manual_game():
    library = GameLibrary()

    game = library.add_game({"title": "  Celeste ", "platforms": ["PC"], "user_metadata": {"rating": 5}})

    assert game["title"] == "Celeste"
    assert game["data_source"]["primary"] == "manual"
    assert game["user_metadata"]["rating"] == 5
    assert game["official_store_links"]["steam"] is None


def test_add_requires_title():
    with pytest.raises(InvalidGameError):
        GameLibrary().add_game({"title": "   "})


def test_duplicates_compare_title_and_platforms():
    library = GameLibrary()
    library.add_game({"title": "Doom", "platforms": ["PC", "DOS"]})

    with pytest.raises(DuplicateGameError):
        library.add_game({"title": "DOOM", "platforms": ["DOS", "PC"]})

    library.add_game({"title": "Doom", "platforms": ["SNES"]})
    assert len(library) == 2


def test_update_merges_user_metadata():
    library = GameLibrary()
    game = library.add_game({"title": "Celeste", "user_metadata": {"rating": 4}})

    updated = library.update_game(game["id"], {
        "user_metadata": {"completion_status": "completed"},
        "developer": "Maddy Makes Games",
        "id": "something-else",
    })

    assert updated["id"] == game["id"]
    assert updated["developer"] == "Maddy Makes Games"
    assert updated["user_metadata"]["rating"] == 4
    assert updated["user_metadata"]["completion_status"] == "completed"

    with pytest.raises(InvalidGameError):
        library.update_game(game["id"], {"user_metadata": {"completion_status": "abandoned?"}})


def test_get_and_remove():
    library = GameLibrary()
    game = library.add_game({"title": "Celeste"})

    assert library.get_game(game["id"]) is game

    library.remove_game(game["id"])
    with pytest.raises(GameNotFoundError):
        library.get_game(game["id"])
    with pytest.raises(GameNotFoundError):
        library.remove_game(game["id"])


def test_find_games_and_statistics(ranked_botw):
    library = GameLibrary()
    library.add_game(ranked_botw)
    library.add_game({"title": "Celeste", "developer": "Maddy Makes Games"})

    assert [g["title"] for g in library.find_games("maddy")] == ["Celeste"]
    assert [g["title"] for g in library.find_games("NINTENDO")] == [ranked_botw.title]
    assert len(library.find_games("")) == 2

    stats = library.statistics()
    assert stats["total_games"] == 2
    assert stats["imported_from_wikidata"] == 1
    assert stats["manually_added"] == 1
    assert stats["imported_from_wikipedia"] == 0


def test_save_and_load(tmp_path, ranked_botw):
    path = tmp_path / "games.json"
    library = GameLibrary(str(path))
    game = library.add_game(ranked_botw)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["games"][0]["id"] == game["id"]
    assert data["metadata"]["total_games"] == 1

    reloaded = GameLibrary(str(path))
    assert reloaded.load() == 1
    assert reloaded.get_game(game["id"])["data_source"]["primary"] == "wikidata"


def test_load_missing_or_corrupt_file(tmp_path):
    assert GameLibrary(str(tmp_path / "missing.json")).load() == 0

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    library = GameLibrary(str(corrupt))
    assert library.load() == 0
    assert library.list_games() == []


def test_status_messages_are_queued():
    drain_messages()
    GameLibrary().add_game({"title": "Hollow Knight"})

    messages = drain_messages()

    assert any("Added to library: Hollow Knight" in m for m in messages)
    assert drain_messages() == []


def test_status_queue_drops_oldest_when_full():
    drain_messages()
    for i in range(MSG_QUEUE_SIZE + 10):
        log(f"status {i}")

    messages = drain_messages()

    assert len(messages) == MSG_QUEUE_SIZE
    assert messages[0].endswith(" status 10")
    assert messages[-1].endswith(f" status {MSG_QUEUE_SIZE + 9}")
