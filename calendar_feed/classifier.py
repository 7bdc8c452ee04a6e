# -*- coding: utf-8 -*-
"""
Heuristics that decide whether a calendar record is schoolwork.

The keyword lists and patterns are tuned to one school's calendar export, so
they live in a JSON rule file (``rules/default.json``) and can be swapped with
:func:`load_rules` or the ``CALENDAR_CLASSIFIER_RULES`` environment variable.
"""
from __future__ import annotations

import json
import logging
import os
import re
import typing as t
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from .models import Classification


logger = logging.getLogger(__name__)

RULES_DIR = Path(__file__).resolve().parent / "rules"


def _word_pattern(words: t.Iterable[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(w) for w in words)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


@dataclass(frozen=True)
class ClassifierRules:
    """A replaceable rule set for assignment detection."""
    keywords: tuple[str, ...]
    class_prefix_pattern: str
    time_hint_pattern: str
    major_keywords: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, data: dict[str, t.Any]) -> "ClassifierRules":
        return cls(
            keywords=tuple(data.get("keywords", []) or []),
            class_prefix_pattern=data.get("class_prefix_pattern", "") or "",
            time_hint_pattern=data.get("time_hint_pattern", "") or "",
            major_keywords=tuple(data.get("major_keywords", []) or []),
        )

    @cached_property
    def keyword_re(self) -> t.Optional[re.Pattern[str]]:
        return _word_pattern(self.keywords) if self.keywords else None

    @cached_property
    def class_prefix_re(self) -> t.Optional[re.Pattern[str]]:
        return re.compile(self.class_prefix_pattern, re.IGNORECASE) if self.class_prefix_pattern else None

    @cached_property
    def time_hint_re(self) -> t.Optional[re.Pattern[str]]:
        return re.compile(self.time_hint_pattern, re.IGNORECASE) if self.time_hint_pattern else None

    @cached_property
    def major_re(self) -> t.Optional[re.Pattern[str]]:
        return _word_pattern(self.major_keywords) if self.major_keywords else None


def load_rules(rules_name: str = "default", rules_dir: t.Optional[str] = None) -> ClassifierRules:
    """
    Load a classifier rule set from a JSON file.

    Args:
        rules_name: Name of the rules file (without .json extension)
        rules_dir: Optional custom path to the rules directory.
                   Defaults to the ``rules`` directory next to this module.

    Returns:
        The parsed rule set.

    Raises:
        FileNotFoundError: If the rules file doesn't exist.
        ValueError: If the file isn't valid JSON or a pattern doesn't compile.
    """
    rules_file = Path(rules_dir or RULES_DIR) / f"{rules_name}.json"
    if not rules_file.exists():
        raise FileNotFoundError(f"Rules file not found: {rules_file}")

    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        rules = ClassifierRules.from_mapping(data)
        # Compile eagerly so a broken rule file fails here, not mid-parse
        re.compile(rules.class_prefix_pattern)
        re.compile(rules.time_hint_pattern)
    except (json.JSONDecodeError, re.error) as e:
        raise ValueError(f"Invalid rules file {rules_file}: {e}") from e
    return rules


def _rules_from_environment() -> ClassifierRules:
    override = os.getenv("CALENDAR_CLASSIFIER_RULES")
    if override:
        path = Path(override)
        return load_rules(path.stem, str(path.parent))
    return load_rules()


DEFAULT_RULES = _rules_from_environment()


def classify(title: str, rules: t.Optional[ClassifierRules] = None) -> Classification:
    """Decide whether a title describes an assignment and pick up an inline due time.

    A title is an assignment when it contains one of the rule keywords as a
    whole word, or starts with a course/section label such as
    ``ADV. BIOLOGY - B:``. For assignments, the first clock time in the title
    (``11:59 p.m.``, ``9am``) is returned as the time hint.

    :param title: Decoded record title.
    :param rules: Rule set to use; defaults to :data:`DEFAULT_RULES`.
    :return: The classification.
    """
    rules = rules or DEFAULT_RULES
    has_keyword = bool(rules.keyword_re and rules.keyword_re.search(title))
    has_class_prefix = bool(rules.class_prefix_re and rules.class_prefix_re.match(title))
    if not (has_keyword or has_class_prefix):
        return Classification(is_assignment=False)

    hint = None
    if rules.time_hint_re is not None:
        match = rules.time_hint_re.search(title)
        if match:
            hint = match.group(1) if match.groups() else match.group(0)
    return Classification(is_assignment=True, extracted_time_hint=hint)


def is_major_assignment(
        title: str,
        description: t.Optional[str] = None,
        rules: t.Optional[ClassifierRules] = None,
) -> bool:
    """True when the title or description names a high-stakes deliverable (exam, project, ...)."""
    rules = rules or DEFAULT_RULES
    if rules.major_re is None:
        return False
    return bool(rules.major_re.search(f"{title or ''} {description or ''}"))
