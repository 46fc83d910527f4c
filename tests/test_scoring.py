import pytest

from gameshelf_app.search.scoring import ConfidenceScorer


COMPLETE_FIELDS = dict(
    release_date="2017-03-03",
    developer="Nintendo EPD",
    publisher="Nintendo",
    platforms=["Nintendo Switch", "Wii U"],
    genre=["Action-adventure"],
    cover_image="https://commons.wikimedia.org/wiki/Special:FilePath/Zelda.png",
)


def test_completeness_counts_checklist(wikidata_game):
    scorer = ConfidenceScorer()

    assert scorer.completeness(wikidata_game()) == pytest.approx(1 / 8)
    assert scorer.completeness(wikidata_game(**COMPLETE_FIELDS)) == pytest.approx(7 / 8)
    assert scorer.completeness(
        wikidata_game(description="An open world game.", **COMPLETE_FIELDS)
    ) == pytest.approx(1.0)


def test_wikidata_scores(wikidata_game):
    scorer = ConfidenceScorer()
    full = wikidata_game(title="Celeste", description="Climbing game.", **COMPLETE_FIELDS)

    # 0.5 exact + 1.0 * 0.3 + 0.2 entity id, capped
    assert scorer.score(full, "celeste") == pytest.approx(1.0)

    partial = wikidata_game(**COMPLETE_FIELDS)
    # 0.3 partial + 0.875 * 0.3 + 0.2
    assert scorer.score(partial, "Breath of the Wild") == pytest.approx(0.7625)

    unrelated = wikidata_game(title="Tetris", source_id=None)
    # title only: 0.125 * 0.3
    assert scorer.score(unrelated, "Zelda") == pytest.approx(0.0375)


def test_wikipedia_scores(wikipedia_game):
    scorer = ConfidenceScorer()
    description = "Celeste is a 2018 platform game designed by Maddy Thorson and Noel Berry."
    game = wikipedia_game(description=description)

    # 0.4 exact + 0.25 * 0.25 + 0.15 attribution + 0.2 description
    assert scorer.score(game, "Celeste") == pytest.approx(0.8125)

    short = wikipedia_game(description="Platformer.")
    assert scorer.score(short, "Celeste") == pytest.approx(0.4 + 0.0625 + 0.15)


def test_annotate_returns_scored_copies(wikidata_game):
    scorer = ConfidenceScorer()
    original = wikidata_game(**COMPLETE_FIELDS)

    annotated = scorer.annotate([original], "Breath of the Wild")

    assert original.search_metadata is None
    assert annotated[0].search_metadata.query == "Breath of the Wild"
    assert annotated[0].search_metadata.source == "wikidata"
    assert annotated[0].confidence == pytest.approx(0.7625)


def test_quality_gate_needs_confidence_and_completeness(wikidata_game, with_confidence):
    scorer = ConfidenceScorer()

    complete = with_confidence(wikidata_game(**COMPLETE_FIELDS), 0.75)
    sparse = with_confidence(wikidata_game(), 0.95)
    unsure = with_confidence(wikidata_game(**COMPLETE_FIELDS), 0.7)

    assert scorer.has_good_quality([sparse, complete])
    assert not scorer.has_good_quality([sparse])
    assert not scorer.has_good_quality([unsure])
    assert not scorer.has_good_quality([])
