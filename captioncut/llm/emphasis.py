"""
captioncut.llm.emphasis - Emphasis detection (Stage 3).

Sends the words left after cuts to the LLM and keeps the suggestions that
can be matched back to a transcript word. Matching is by normalized text
against the first occurrence not already claimed, since models miscount
word positions.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

from captioncut.analyze.fillers import normalize_word
from captioncut.captions.models import Word
from captioncut.exceptions import EmphasisError, LLMResponseError
from captioncut.timeline.remap import is_excised
from captioncut.timeline.segments import CutPlan, load_cut_plan

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at identifying impactful words for video captions. "
    "Always respond with valid JSON only."
)

SKIP_WORDS = frozenset(
    {
        "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "must", "shall", "can", "need", "dare",
        "and", "or", "but", "if", "then", "else", "when", "where", "why",
        "how", "what", "which", "who", "whom", "whose", "that", "this",
        "these", "those", "it", "its", "i", "i'm", "you", "your", "he",
        "she", "we", "they", "me", "him", "her", "us", "them", "my", "our",
        "in", "on", "at", "to", "for", "of", "with", "by", "from", "up",
        "down", "out", "off", "over", "under", "again", "further", "once",
        "here", "there", "all", "each", "few", "more", "most", "other",
        "some", "such", "no", "nor", "not", "only", "own", "same", "so",
        "than", "too", "very", "just", "gonna", "gotta", "wanna",
    }
)  # fmt: skip


def words_after_cuts(words: Sequence[Word], plan: CutPlan) -> list[Word]:
    """Words that do not overlap any removed segment, in original order."""
    return [
        w for w in words if not is_excised(w.original_start_ms, w.original_end_ms, plan)
    ]


def emphasis_target(word_count: int, min_percent: float, max_percent: float) -> tuple[int, int]:
    """Inclusive range of emphasis words to ask for."""
    return (
        math.floor(word_count * min_percent / 100),
        math.ceil(word_count * max_percent / 100),
    )


def reconcile_emphasis(
    suggestions: Sequence[dict[str, Any]],
    words: Sequence[Word],
) -> list[dict[str, Any]]:
    """Match LLM suggestions to transcript words.

    Function words and suggestions with no unclaimed match are discarded.
    A repeated word is always matched to its earliest unclaimed occurrence,
    whichever occurrence the model meant.

    Args:
        suggestions: Dicts with 'word' and optional 'reason'
        words: Candidate words (after cuts), in order

    Returns:
        List of {word, original_index, reason} in suggestion order
    """
    claimed: set[int] = set()
    emphasis = []

    for item in suggestions:
        target = normalize_word(item["word"])
        if not target or target in SKIP_WORDS:
            continue

        for w in words:
            if w.original_index in claimed:
                continue
            if normalize_word(w.text) == target:
                claimed.add(w.original_index)
                emphasis.append(
                    {
                        "word": w.text,
                        "original_index": w.original_index,
                        "reason": item.get("reason", ""),
                    }
                )
                break
        else:
            logger.debug("Dropped emphasis suggestion with no match: %r", item["word"])

    return emphasis


def detect_emphasis(
    words: Sequence[Word],
    client: Any,
    template_manager: Any,
    min_percent: float = 15.0,
    max_percent: float = 25.0,
    console=None,
) -> list[dict[str, Any]]:
    """Ask the LLM for emphasis words and reconcile its answer.

    Args:
        words: Words left after cuts
        client: LLMClient instance
        template_manager: PromptTemplateManager instance
        min_percent: Lower bound of the emphasis target, percent of words
        max_percent: Upper bound of the emphasis target, percent of words
        console: Optional rich console for output

    Returns:
        Reconciled emphasis entries

    Raises:
        LLMError: If the LLM request fails
        EmphasisError: If the response holds no readable suggestion list
    """
    from captioncut.llm.parsing import extract_suggestions, parse_llm_json

    if not words:
        return []

    target_min, target_max = emphasis_target(len(words), min_percent, max_percent)
    prompt = template_manager.render(
        "emphasis.txt",
        {
            "TRANSCRIPT": " ".join(w.text for w in words),
            "WORD_COUNT": len(words),
            "TARGET_MIN": target_min,
            "TARGET_MAX": target_max,
            "MIN_PERCENT": min_percent,
            "MAX_PERCENT": max_percent,
        },
    )

    if console:
        console.print(f"[dim]  Sending prompt ({len(prompt)} chars) to {client.model}...[/dim]")

    response = client.complete(
        prompt, system=SYSTEM_PROMPT, temperature=0.3, json_mode=True, console=console
    )

    try:
        suggestions = extract_suggestions(parse_llm_json(response))
    except LLMResponseError as e:
        raise EmphasisError(f"Could not read emphasis suggestions: {e}") from e

    logger.info("LLM suggested %d emphasis words", len(suggestions))
    return reconcile_emphasis(suggestions, words)


def run_detect_emphasis(
    workspace: Any,
    config: Any,
    console=None,
    client: Any = None,
) -> dict[str, Any]:
    """Stage 3: write the emphasis artifact.

    Args:
        workspace: Workspace instance
        config: CaptionCutConfig instance
        console: Optional rich console for output
        client: LLMClient to use instead of one built from config

    Returns:
        Dict with emphasis summary
    """
    from captioncut.io import read_artifact, write_json
    from captioncut.llm.client import create_client_from_config
    from captioncut.llm.templates import PromptTemplateManager
    from captioncut.transcribe.engine import words_from_transcription

    transcription = read_artifact(workspace.transcription_path, produced_by="transcribe")
    plan = load_cut_plan(workspace.cuts_path)

    remaining = words_after_cuts(words_from_transcription(transcription), plan)
    if console:
        console.print(f"[dim]  Words remaining after cuts: {len(remaining)}[/dim]")

    emphasis_words = detect_emphasis(
        remaining,
        client or create_client_from_config(config),
        PromptTemplateManager(workspace.prompts_dir),
        min_percent=config.emphasis_min_percent,
        max_percent=config.emphasis_max_percent,
        console=console,
    )

    percentage = len(emphasis_words) / len(remaining) * 100 if remaining else 0.0
    write_json(
        workspace.emphasis_path,
        {
            "source_ref": transcription.get("source_ref", ""),
            "emphasis_words": emphasis_words,
            "total_words": len(remaining),
            "emphasis_percentage": percentage,
        },
    )

    if console:
        console.print(
            f"[green]✓[/green] {len(emphasis_words)} emphasis words ({percentage:.1f}%)"
        )
        for entry in emphasis_words:
            console.print(f'[dim]  "{entry["word"]}" - {entry["reason"]}[/dim]')

    return {
        "emphasis_words": len(emphasis_words),
        "total_words": len(remaining),
        "emphasis_percentage": percentage,
    }
