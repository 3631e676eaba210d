"""Tests for captioncut.analyze.fillers module."""

from __future__ import annotations

import pytest

from captioncut.analyze.fillers import (
    analyze_fillers,
    build_cut_plan,
    compile_patterns,
    is_filler_word,
    normalize_word,
    run_analyze_fillers,
)
from captioncut.captions.models import Word
from captioncut.config import DEFAULT_FILLER_PATTERNS
from captioncut.exceptions import ArtifactError
from captioncut.io import read_json
from captioncut.transcribe.engine import words_from_transcription


@pytest.fixture
def patterns():
    return compile_patterns(DEFAULT_FILLER_PATTERNS)


class TestIsFillerWord:
    @pytest.mark.parametrize("text", ["um", "Um,", "uh", "uhm", "ummm", "er", "err.", "ah", "hmm"])
    def test_fillers(self, patterns, text: str) -> None:
        assert is_filler_word(text, patterns)

    @pytest.mark.parametrize("text", ["umbrella", "her", "aha", "hum", "the", "um-hm"])
    def test_not_fillers(self, patterns, text: str) -> None:
        assert not is_filler_word(text, patterns)

    def test_normalize_strips_punctuation(self) -> None:
        assert normalize_word("Wow!?") == "wow"


class TestAnalyzeFillers:
    def test_sample(self, sample_transcription, patterns) -> None:
        result = analyze_fillers(words_from_transcription(sample_transcription), patterns)
        assert result["filler_words"] == [
            {"word": "um", "start_ms": 400, "end_ms": 700, "index": 1, "auto_remove": True}
        ]
        assert result["pauses"] == [
            {
                "start_ms": 1800,
                "end_ms": 3000,
                "duration_ms": 1200,
                "after_word_index": 4,
                "auto_remove": True,
            }
        ]

    def test_short_pause_detected_not_removed(self, patterns) -> None:
        words = [Word("one", 0, 500, 0), Word("two", 1100, 1500, 1)]
        result = analyze_fillers(words, patterns)
        assert result["pauses"][0]["duration_ms"] == 600
        assert result["pauses"][0]["auto_remove"] is False

    def test_gap_below_threshold_ignored(self, patterns) -> None:
        words = [Word("one", 0, 500, 0), Word("two", 999, 1500, 1)]
        assert analyze_fillers(words, patterns)["pauses"] == []

    def test_thresholds_are_inclusive(self, patterns) -> None:
        words = [Word("one", 0, 500, 0), Word("two", 1000, 1200, 1), Word("three", 2200, 2300, 2)]
        pauses = analyze_fillers(words, patterns)["pauses"]
        assert [(p["duration_ms"], p["auto_remove"]) for p in pauses] == [(500, False), (1000, True)]

    def test_no_words(self, patterns) -> None:
        assert analyze_fillers([], patterns) == {"filler_words": [], "pauses": []}


class TestBuildCutPlan:
    def test_filler_and_pause(self) -> None:
        fillers = [{"word": "um", "start_ms": 400, "end_ms": 700, "auto_remove": True}]
        pauses = [{"start_ms": 1800, "end_ms": 3000, "duration_ms": 1200, "auto_remove": True}]
        plan = build_cut_plan("a.mp4", fillers, pauses)
        assert [s.to_dict() for s in plan] == [
            {"start_ms": 400, "end_ms": 700, "reason": 'filler: "um"'},
            {"start_ms": 2000, "end_ms": 2800, "reason": "pause: 1200ms"},
        ]

    def test_skips_entries_not_auto_removed(self) -> None:
        fillers = [{"word": "um", "start_ms": 400, "end_ms": 700, "auto_remove": False}]
        pauses = [{"start_ms": 1800, "end_ms": 2400, "duration_ms": 600, "auto_remove": False}]
        assert len(build_cut_plan("a.mp4", fillers, pauses)) == 0

    def test_pause_too_short_for_both_margins(self) -> None:
        pauses = [{"start_ms": 0, "end_ms": 400, "duration_ms": 400, "auto_remove": True}]
        assert len(build_cut_plan("a.mp4", [], pauses)) == 0

    def test_adjacent_filler_and_pause_merge(self) -> None:
        fillers = [{"word": "uh", "start_ms": 2000, "end_ms": 2300, "auto_remove": True}]
        pauses = [{"start_ms": 1000, "end_ms": 2500, "duration_ms": 1500, "auto_remove": True}]
        plan = build_cut_plan("a.mp4", fillers, pauses)
        assert len(plan) == 1
        assert plan.segments[0].start_ms == 1200
        assert plan.segments[0].end_ms == 2300
        assert plan.segments[0].reason == 'pause: 1500ms; filler: "uh"'


class TestRunAnalyzeFillers:
    def test_writes_both_artifacts(
        self, tmp_workspace, sample_transcription, config, write_artifact
    ) -> None:
        write_artifact(tmp_workspace.transcription_path, sample_transcription)
        summary = run_analyze_fillers(tmp_workspace, config)

        assert summary == {"fillers": 1, "pauses": 1, "segments": 2, "total_removed_ms": 1100}
        analysis = read_json(tmp_workspace.filler_analysis_path)
        assert analysis["total_fillers"] == 1
        assert analysis["source_ref"] == "/videos/talk.mp4"
        cuts = read_json(tmp_workspace.cuts_path)
        assert cuts["total_removed_ms"] == 1100

    def test_missing_transcription(self, tmp_workspace, config) -> None:
        with pytest.raises(ArtifactError, match="transcribe"):
            run_analyze_fillers(tmp_workspace, config)
