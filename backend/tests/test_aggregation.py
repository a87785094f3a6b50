from datetime import datetime, timedelta

import pytest

from backend.moodflow.services import aggregation

NOW = datetime(2026, 10, 19, 18, 30)


def entry(days_ago=0, mood="Okay", hours=0, emotions=None, sentiment=None, text="", keywords=None):
    analysis = None
    if emotions is not None or sentiment is not None or keywords is not None:
        analysis = {
            "overallSentiment": sentiment or "Neutral",
            "emotions": [{"emotion": name, "score": score} for name, score in (emotions or {}).items()],
            "summary": "",
            "keywords": keywords or [],
        }
    return {
        "date": NOW - timedelta(days=days_ago, hours=hours),
        "mood": mood,
        "text": text,
        "analysis": analysis,
    }


class TestStreak:
    def test_three_consecutive_days(self):
        assert aggregation.streak([entry(0), entry(1), entry(2)]) == 3

    def test_gap_stops_the_streak(self):
        assert aggregation.streak([entry(0), entry(2)]) == 1

    def test_empty(self):
        assert aggregation.streak([]) == 0

    def test_multiple_entries_per_day_count_once(self):
        entries = [entry(0), entry(0, hours=3), entry(1), entry(1, hours=2)]
        assert aggregation.streak(entries) == 2

    def test_walks_back_from_most_recent_day_not_today(self):
        assert aggregation.streak([entry(5), entry(6), entry(7), entry(9)]) == 3

    def test_order_of_input_does_not_matter(self):
        assert aggregation.streak([entry(2), entry(0), entry(1)]) == 3


class TestAverageMood:
    def test_mean_rounds_to_label(self):
        entries = [entry(mood="Awesome"), entry(mood="Good"), entry(mood="Good"), entry(mood="Okay")]
        assert aggregation.average_score(entries) == 4.0
        assert aggregation.average_mood_label(entries) == "Good"

    def test_half_rounds_up(self):
        assert aggregation.average_mood_label([entry(mood="Okay"), entry(mood="Good")]) == "Good"
        assert aggregation.average_mood_label([entry(mood="Terrible"), entry(mood="Bad")]) == "Bad"

    def test_empty(self):
        assert aggregation.average_mood_label([]) is None

    def test_unmatched_score_falls_back_to_okay(self):
        assert aggregation.mood_for_score(0) == aggregation.DEFAULT_MOOD
        assert aggregation.mood_for_score(9).value == "Okay"


def test_mood_time_series_is_chronological():
    entries = [entry(0, "Awesome"), entry(1, "Bad"), entry(2, "Okay")]
    series = aggregation.mood_time_series(entries)
    assert [score for _, score in series] == [3, 2, 5]
    assert series[0][0] < series[-1][0]


class TestEmotionDistribution:
    def test_sums_scores_descending(self):
        entries = [entry(emotions={"Joy": 80}), entry(emotions={"Joy": 20, "Sadness": 50})]
        assert aggregation.emotion_distribution(entries) == [("Joy", 100), ("Sadness", 50)]

    def test_entries_without_analysis_are_ignored(self):
        assert aggregation.emotion_distribution([entry(), entry()]) == []


class TestHeatmap:
    @pytest.mark.parametrize("score, color", [
        (5, "green"), (4, "lime"), (3, "yellow"), (2, "orange"), (1, "red"), (0, "gray"), (None, "gray"),
    ])
    def test_color_bands(self, score, color):
        assert aggregation.heatmap_color(score) == color

    def test_per_day_rounded_average(self):
        entries = [entry(0, "Awesome"), entry(0, "Good", hours=1), entry(1, "Terrible")]
        result = aggregation.heatmap(entries)
        assert result[NOW.date()] == {"score": 5, "color": "green"}
        assert result[(NOW - timedelta(days=1)).date()] == {"score": 1, "color": "red"}

    def test_month_grid(self):
        grid = aggregation.heatmap_month([entry(0, "Good")], 2026, 10)
        assert len(grid["days"]) == 31
        # 1 October 2026 is a Thursday
        assert grid["first_weekday"] == 4
        day = grid["days"][18]
        assert day == {"date": "2026-10-19", "score": 4, "color": "lime"}
        assert grid["days"][0]["color"] == "gray"
        assert grid["days"][0]["score"] is None


class TestDashboardStats:
    def test_empty(self):
        assert aggregation.dashboard_stats([], now=NOW) == {
            "streak": 0, "today_mood": "N/A", "avg_sentiment": "N/A", "total_entries": 0,
        }

    def test_with_entries(self):
        entries = [entry(0, "Awesome"), entry(1, "Good")]
        assert aggregation.dashboard_stats(entries, now=NOW) == {
            "streak": 2, "today_mood": "Awesome", "avg_sentiment": "Awesome", "total_entries": 2,
        }

    def test_not_logged_today(self):
        stats = aggregation.dashboard_stats([entry(3, "Bad")], now=NOW)
        assert stats["today_mood"] == "Not Logged"


def test_mood_distribution_percentages():
    entries = [entry(mood="Good"), entry(mood="Good"), entry(mood="Bad")]
    rows = {row["mood"]: row for row in aggregation.mood_distribution(entries)}
    assert list(rows) == ["Awesome", "Good", "Okay", "Bad", "Terrible"]
    assert rows["Good"] == {"mood": "Good", "count": 2, "percentage": 66.7}
    assert rows["Bad"]["percentage"] == 33.3
    assert rows["Awesome"]["percentage"] == 0.0


def test_mood_distribution_empty():
    assert all(row["percentage"] == 0.0 for row in aggregation.mood_distribution([]))


class TestMostFrequentMood:
    def test_plain_majority(self):
        assert aggregation.most_frequent_mood([entry(mood="Bad"), entry(mood="Bad"), entry(mood="Good")]) == "Bad"

    def test_tie_goes_to_lower_mood(self):
        assert aggregation.most_frequent_mood([entry(mood="Awesome"), entry(mood="Okay")]) == "Okay"

    def test_empty(self):
        assert aggregation.most_frequent_mood([]) is None


def test_top_emotions_by_occurrence():
    entries = [
        entry(emotions={"Joy": 10, "Calm": 90}),
        entry(emotions={"Joy": 5}),
        entry(emotions={"Joy": 1, "Anxiety": 40}),
    ]
    top = aggregation.top_emotions(entries)
    assert top[0] == ("Joy", 3)
    assert set(top[1:]) == {("Calm", 1), ("Anxiety", 1)}
    assert len(aggregation.top_emotions(entries, limit=1)) == 1


class TestNudge:
    def test_welcome_without_entries(self):
        assert aggregation.nudge([])["title"] == "Welcome!"

    @pytest.mark.parametrize("sentiment, title", [
        ("Negative", "A Moment for You"),
        ("Positive", "Keep the Momentum"),
        ("Mixed", "Daily Reflection"),
    ])
    def test_latest_sentiment(self, sentiment, title):
        entries = [entry(0, sentiment=sentiment), entry(1, sentiment="Positive")]
        assert aggregation.nudge(entries)["title"] == title

    def test_no_analysis(self):
        assert aggregation.nudge([entry()])["title"] == "Daily Reflection"


class TestFilterEntries:
    entries = [
        entry(0, "Good", text="Long walk by the river", keywords=["walk"]),
        entry(1, "Bad", text="Deadline pressure at work", keywords=["deadline", "work"]),
        entry(2, "Okay", text="Quiet evening", keywords=["Reading"]),
    ]

    def test_search_text_and_keywords(self):
        assert [e["mood"] for e in aggregation.filter_entries(self.entries, search="RIVER")] == ["Good"]
        assert [e["mood"] for e in aggregation.filter_entries(self.entries, search="read")] == ["Okay"]

    def test_mood_filter(self):
        result = aggregation.filter_entries(self.entries, moods=["Bad", "Okay"])
        assert [e["mood"] for e in result] == ["Bad", "Okay"]

    def test_oldest_first(self):
        result = aggregation.filter_entries(self.entries, order="oldest")
        assert [e["mood"] for e in result] == ["Okay", "Bad", "Good"]

    def test_blank_search_is_ignored(self):
        assert len(aggregation.filter_entries(self.entries, search="   ")) == 3

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            aggregation.filter_entries(self.entries, order="sideways")
        with pytest.raises(ValueError):
            aggregation.filter_entries(self.entries, moods=["Ecstatic"])


def test_entries_between():
    entries = [entry(0), entry(10), entry(100)]
    result = aggregation.entries_between(entries, NOW - timedelta(days=30), NOW)
    assert len(result) == 2
