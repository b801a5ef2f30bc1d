"""
Tip settlement rules.

A tip is free text ("Over 2.5", "Liverpool win & BTTS", "Arsenal Draw No
Bet").  Settling it against a final scoreline is an ordered scan over
``TIP_RULES``: the first rule whose predicate matches the lower-cased tip
decides the outcome.  Specific markets sit before the generic moneyline
rules, so rule order is the tie-break.

Team-side inference is plain substring containment on team names.  A
missing or blank team name never matches, so rules that depend on it fall
back to their default side.

Nothing in here raises for odd tip text; an unmatched tip settles as a push.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

WIN: str = "win"
LOSS: str = "loss"
PUSH: str = "push"

OUTCOMES: Tuple[str, ...] = (WIN, LOSS, PUSH)

_NEGATION = re.compile(r"\bno\b")


@dataclass(frozen=True)
class Scoreline:
    """Final score plus the team names the tip may refer to."""

    home_goals: int
    away_goals: int
    home_team: Optional[str] = None
    away_team: Optional[str] = None

    @property
    def total(self) -> int:
        return self.home_goals + self.away_goals

    @property
    def home_won(self) -> bool:
        return self.home_goals > self.away_goals

    @property
    def away_won(self) -> bool:
        return self.away_goals > self.home_goals

    @property
    def is_draw(self) -> bool:
        return self.home_goals == self.away_goals

    @property
    def btts(self) -> bool:
        return self.home_goals > 0 and self.away_goals > 0

    @property
    def home_name(self) -> Optional[str]:
        return _normalise(self.home_team)

    @property
    def home_surname(self) -> Optional[str]:
        return _last_word(self.home_team)

    @property
    def away_surname(self) -> Optional[str]:
        return _last_word(self.away_team)


Predicate = Callable[[str, Optional[str], Scoreline], bool]
Settlement = Callable[[str, Scoreline], str]


@dataclass(frozen=True)
class TipRule:
    name: str
    market: str
    matches: Predicate
    settle: Settlement


def _normalise(team: Optional[str]) -> Optional[str]:
    if team is None:
        return None
    cleaned = team.strip().lower()
    return cleaned or None


def _last_word(team: Optional[str]) -> Optional[str]:
    name = _normalise(team)
    return name.split()[-1] if name else None


def _mentions(tip: str, token: Optional[str]) -> bool:
    return bool(token) and token in tip


def _outcome(won: bool) -> str:
    return WIN if won else LOSS


def _contains(*phrases: str) -> Predicate:
    return lambda tip, tip_type, s: any(p in tip for p in phrases)


# ---------------------------------------------------------------------------
# Predicates and settlement functions
# ---------------------------------------------------------------------------

def _over(line: float) -> Settlement:
    return lambda tip, s: _outcome(s.total > line)


def _under(line: float) -> Settlement:
    return lambda tip, s: _outcome(s.total < line)


def _btts_negated(tip: str) -> bool:
    if "no btts" in tip or "no — btts" in tip:
        return True
    return "both teams to score" in tip and bool(_NEGATION.search(tip))


def _combo_side_won(tip: str, s: Scoreline) -> bool:
    # Home unless a home name is known and absent from the tip.
    if s.home_name is None or s.home_name in tip:
        return s.home_won
    return s.away_won


def _settle_double_chance(tip: str, s: Scoreline) -> str:
    if _mentions(tip, s.home_name):
        return _outcome(not s.away_won)
    return _outcome(not s.home_won)


def _settle_draw_no_bet(tip: str, s: Scoreline) -> str:
    if s.is_draw:
        return PUSH
    is_home = _mentions(tip, s.home_name) or "home" in tip
    return _outcome(s.home_won if is_home else s.away_won)


def _settle_asian_handicap(tip: str, s: Scoreline) -> str:
    # Fixed -0.5 line on the tipped side.
    if _mentions(tip, s.home_surname):
        return _outcome(s.home_goals > s.away_goals + 0.5)
    return _outcome(s.away_goals > s.home_goals + 0.5)


def _settle_to_score(tip: str, s: Scoreline) -> str:
    if _mentions(tip, s.home_name):
        return _outcome(s.home_goals > 0)
    return _outcome(s.away_goals > 0)


# ---------------------------------------------------------------------------
# Rule table (evaluated top to bottom)
# ---------------------------------------------------------------------------

TIP_RULES: Tuple[TipRule, ...] = (
    TipRule("over_3.5", "over_under", _contains("over 3.5"), _over(3.5)),
    TipRule("over_2.5", "over_under", _contains("over 2.5"), _over(2.5)),
    TipRule("over_1.5", "over_under", _contains("over 1.5"), _over(1.5)),
    TipRule("under_2.5", "over_under", _contains("under 2.5"), _under(2.5)),
    TipRule("under_3.5", "over_under", _contains("under 3.5"), _under(3.5)),
    TipRule(
        "btts_yes", "btts",
        lambda tip, tip_type, s: "both teams to score" in tip and not _btts_negated(tip),
        lambda tip, s: _outcome(s.btts),
    ),
    TipRule(
        "btts_no", "btts",
        lambda tip, tip_type, s: _btts_negated(tip),
        lambda tip, s: _outcome(not s.btts),
    ),
    TipRule(
        "draw", "draw",
        lambda tip, tip_type, s: "draw" in tip and tip_type == "draw",
        lambda tip, s: _outcome(s.is_draw),
    ),
    TipRule(
        "win_and_btts", "combo",
        _contains("win & btts"),
        lambda tip, s: _outcome(_combo_side_won(tip, s) and s.btts),
    ),
    TipRule(
        "win_and_over_2.5", "combo",
        _contains("win & over 2.5"),
        lambda tip, s: _outcome(_combo_side_won(tip, s) and s.total > 2.5),
    ),
    TipRule("double_chance", "double_chance", _contains("win or draw"), _settle_double_chance),
    TipRule("draw_no_bet", "dnb", _contains("draw no bet"), _settle_draw_no_bet),
    TipRule("asian_handicap", "handicap", _contains("asian handicap"), _settle_asian_handicap),
    TipRule("to_score", "score", _contains("to score"), _settle_to_score),
    TipRule(
        "home_moneyline", "moneyline",
        lambda tip, tip_type, s: _mentions(tip, s.home_surname) or "home win" in tip,
        lambda tip, s: _outcome(s.home_won),
    ),
    TipRule(
        "away_moneyline", "moneyline",
        lambda tip, tip_type, s: _mentions(tip, s.away_surname) or "away win" in tip,
        lambda tip, s: _outcome(s.away_won),
    ),
)


def match_rule(tip: str, tip_type: Optional[str], score: Scoreline) -> Optional[TipRule]:
    """Return the first rule matching ``tip``, or None."""
    tip_lower = (tip or "").lower()
    for rule in TIP_RULES:
        if rule.matches(tip_lower, tip_type, score):
            return rule
    return None


def evaluate_tip(
    tip: Optional[str],
    tip_type: Optional[str],
    home_goals: int,
    away_goals: int,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
) -> str:
    """
    Settle a tip against a final score.

    Returns "win", "loss" or "push".  A tip no rule understands is a push
    rather than an error.
    """
    tip_lower = (tip or "").lower()
    score = Scoreline(home_goals, away_goals, home_team, away_team)

    rule = match_rule(tip_lower, tip_type, score)
    if rule is None:
        return PUSH
    return rule.settle(tip_lower, score)
