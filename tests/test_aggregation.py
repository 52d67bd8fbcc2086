"""
Unit tests for the aggregation views and the end-to-end pipeline.
"""

from datetime import date, datetime, timedelta, timezone

import numpy as np
import pytest

from analysis_core import (
    SIMULATED_FIELDS,
    ClassifiedComment,
    build_analytics,
    build_controversial_topics,
    build_keyword_trends,
    build_language_analysis,
    build_priority_suggestions,
    build_summary,
    build_temporal_patterns,
    calculate_avg_sentiment,
    count_keywords,
    language_name,
    run_analysis,
)


def make_comment(sentiment="supportive", emotion="optimism", language="en", text="", timestamp="2024-01-15T10:00:00Z", comment_id="1"):
    return ClassifiedComment(
        id=comment_id, text=text, timestamp=timestamp, language=language, user_id=None,
        sentiment=sentiment, emotion=emotion, summary=text, evidence_spans=[],
        priority_score=50, confidence=0.8,
    )


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def comments():
    return [
        make_comment("supportive", "optimism", "en"),
        make_comment("critical", "anger", "en"),
        make_comment("suggestion", "concern", "en"),
        make_comment("irrelevant", "concern", "hi"),
    ]


def test_summary_counts(comments, rng):
    summary = build_summary(comments, rng)

    assert summary["total_comments"] == 4
    assert summary["sentiment_distribution"] == {"supportive": 1, "critical": 1, "suggestion": 1, "irrelevant": 1}
    assert summary["emotion_distribution"] == {"optimism": 1, "concern": 2, "trust": 0, "anger": 1}
    assert summary["language_distribution"] == {"en": 3, "hi": 1}


def test_summary_of_no_comments_keeps_zeroed_categories(rng):
    summary = build_summary([], rng)

    assert summary["sentiment_distribution"] == {"supportive": 0, "critical": 0, "suggestion": 0, "irrelevant": 0}
    assert summary["language_distribution"] == {}


def test_trends_cover_last_seven_days(comments, rng):
    trends = build_summary(comments, rng)["trends_over_time"]
    today = datetime.now(timezone.utc).date()

    assert len(trends) == 7
    assert [date.fromisoformat(t["date"]) for t in trends] == [today - timedelta(days=n) for n in range(6, -1, -1)]
    for point in trends:
        assert 50 <= point["supportive"] < 150
        assert 30 <= point["critical"] < 110
        assert 40 <= point["suggestion"] < 130
        assert 10 <= point["irrelevant"] < 40


def test_count_keywords_filters_short_and_stop_words():
    counts = count_keywords(["This policy will help", "POLICY helps   small firms"])

    assert counts["policy"] == 2
    assert counts["help"] == 1
    assert "this" not in counts
    assert "will" not in counts
    assert "small" in counts


def test_keyword_trends_sorted_and_capped(rng):
    text = " ".join(f"word{i:02d} " * (i + 1) for i in range(25))
    trends = build_keyword_trends([make_comment(text=text)], rng)

    assert len(trends) == 20
    assert (trends[0]["keyword"], trends[0]["frequency"]) == ("word24", 25)
    assert trends[-1]["keyword"] == "word05"
    frequencies = [t["frequency"] for t in trends]
    assert frequencies == sorted(frequencies, reverse=True)
    for t in trends:
        assert -1 <= t["sentiment"] < 1
        assert -20 <= t["growth"] < 20


def test_language_analysis(comments):
    analysis = build_language_analysis(comments)

    english, hindi = analysis
    assert english["language"] == "English"
    assert english["count"] == 3
    assert english["sentiments"] == {"supportive": 1, "critical": 1, "suggestion": 1, "irrelevant": 0}
    assert english["avg_sentiment"] == pytest.approx(1 / 3)
    assert (english["supportive"], english["critical"], english["suggestion"], english["irrelevant"]) == (33, 33, 33, 0)
    assert hindi["language"] == "Hindi"
    assert hindi["avg_sentiment"] == 0.0
    assert hindi["irrelevant"] == 100


def test_language_percentages_round_half_up():
    analysis = build_language_analysis([
        make_comment("supportive"), make_comment("critical"),
        make_comment("critical"), make_comment("critical"),
        make_comment("critical"), make_comment("critical"),
        make_comment("critical"), make_comment("critical"),
    ])
    # 1/8 = 12.5% -> 13
    assert analysis[0]["supportive"] == 13


def test_language_name_fallback():
    assert language_name("ta") == "Tamil"
    assert language_name("xx") == "XX"


def test_avg_sentiment_weights():
    assert calculate_avg_sentiment({"supportive": 2, "critical": 2, "suggestion": 0, "irrelevant": 0}) == pytest.approx(0.25)
    assert calculate_avg_sentiment({"supportive": 0, "critical": 0, "suggestion": 0, "irrelevant": 0}) == 0.0


def test_temporal_patterns_count_real_hours():
    """With the same seed, real comments add exactly one per parseable timestamp."""
    baseline = build_temporal_patterns([], np.random.default_rng(3))
    patterns = build_temporal_patterns(
        [
            make_comment(timestamp="2024-01-15T03:30:00Z"),
            make_comment(timestamp="2024-01-15 14:05:00"),
            make_comment(timestamp="not a date"),
        ],
        np.random.default_rng(3),
    )

    assert len(patterns) == 24
    differences = [p["comments"] - b["comments"] for p, b in zip(patterns, baseline)]
    assert differences[3] == 1
    assert differences[14] == 1
    assert sum(differences) == 2
    for p in patterns:
        assert -0.3 <= p["avg_sentiment"] < 0.3
        padding_floor = 20 if 9 <= p["hour"] <= 17 else 5
        assert p["comments"] >= padding_floor


def test_analytics_shapes(comments, rng):
    analytics = build_analytics(comments, rng)

    assert len(analytics["temporal_patterns"]) == 24
    assert [t["topic"] for t in analytics["sentiment_correlation"]][:2] == ["Digital Services", "Tax Policy"]
    assert len(analytics["sentiment_correlation"]) == 8
    for row in analytics["sentiment_correlation"]:
        assert 50 <= row["volume"] < 250
    assert [e["emotion"] for e in analytics["emotion_radar"]] == ["Optimism", "Trust", "Concern", "Anger", "Fear", "Joy"]
    for e in analytics["emotion_radar"]:
        assert 40 <= e["value"] < 80
        assert e["full_mark"] == 100


def test_priority_suggestions_ignore_input(comments, rng):
    with_data = build_priority_suggestions(comments, rng)
    without_data = build_priority_suggestions([], rng)

    assert [s["id"] for s in with_data] == [1, 2, 3]
    assert [s["text"] for s in with_data] == [s["text"] for s in without_data]
    assert [s["priority"] for s in with_data] == [95, 92, 88]
    assert "frequency_range" not in with_data[0]
    assert 150 <= with_data[0]["frequency"] < 250
    assert 120 <= with_data[1]["frequency"] < 200
    assert 100 <= with_data[2]["frequency"] < 170


def test_controversial_topics_are_fixed(rng):
    topics = build_controversial_topics([], rng)

    assert [(t["supportive"], t["critical"]) for t in topics] == [(45, 55), (62, 38), (38, 62)]
    assert 300 <= topics[0]["total_mentions"] < 500
    assert 200 <= topics[1]["total_mentions"] < 350
    assert 150 <= topics[2]["total_mentions"] < 250


def test_run_analysis_end_to_end():
    text = "\n".join([
        "comment_id,comment_text,timestamp,language",
        "1,This is excellent and will help entrepreneurs,2024-01-15T10:30:00Z,en",
        "2,Too many problems with compliance,2024-01-15T11:00:00Z,en",
        "3,skipped row",
        '4,"We should improve, simplify forms",2024-01-16T09:00:00Z,en',
    ])

    result = run_analysis(text, np.random.default_rng(1))

    assert result["success"] is True
    assert result["total_comments"] == 3
    assert [c["id"] for c in result["comments"]] == ["1", "2", "4"]
    assert [c["sentiment"] for c in result["comments"]] == ["supportive", "critical", "suggestion"]
    assert result["comments"][2]["text"] == "We should improve, simplify forms"
    assert result["summary"]["total_comments"] == 3
    assert result["simulated_fields"] == SIMULATED_FIELDS
    assert result["processed_at"].endswith("Z")


def test_run_analysis_is_reproducible_with_seed():
    text = "comment_id,comment_text,timestamp,language\n1,good,2024-01-15T10:30:00Z,en"

    first = run_analysis(text, np.random.default_rng(5))
    second = run_analysis(text, np.random.default_rng(5))

    assert first["comments"] == second["comments"]
    assert first["analytics"] == second["analytics"]


# Run tests if executed directly
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
