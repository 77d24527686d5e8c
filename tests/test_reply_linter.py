"""
Tests for post-reply guardrail checks
"""
from milo.services.reply_linter import lint_reply


def rules(reply):
    return [finding.rule for finding in lint_reply(reply)]


def test_clean_reply():
    reply = (
        "**Estradiol**\n"
        "Estradiol is 41 pg/mL, below the 75 pg/mL goal. Increase estradiol patch to 0.1 mg.\n\n"
        "**Progesterone**\n"
        "Continue oral micronized progesterone 100 mg at bedtime.\n\n"
        "**Plan Summary**\n"
        "Recheck labs in 8 weeks."
    )
    assert rules(reply) == []


def test_high_free_testosterone_without_reduction():
    reply = "**Testosterone**\nFree testosterone is 240 pg/mL. Continue current dose."
    assert rules(reply) == ["free_testosterone_without_reduction"]


def test_high_free_testosterone_with_reduction():
    reply = "**Testosterone**\nFree testosterone is 240 pg/mL. Reduce cypionate to 80 mg weekly."
    assert "free_testosterone_without_reduction" not in rules(reply)


def test_free_testosterone_within_limit():
    assert rules("Free testosterone 150 pg/mL, continue.") == []


def test_banned_phrase():
    assert rules("TSH 2.1 is within the Normal Range.") == ["banned_phrase"]


def test_duplicate_section():
    reply = "**Thyroid**\nContinue.\n\n**Vitamin D**\nContinue.\n\n**Thyroid**\nContinue."
    assert rules(reply) == ["duplicate_section"]


def test_conflicting_recommendation():
    reply = "**DHEA**\nStart DHEA 25 mg daily.\nHold DHEA until retest."
    assert rules(reply) == ["conflicting_recommendation"]


def test_plan_subheadings_are_not_sections():
    reply = (
        "**Thyroid**\nStart liothyronine 5 mcg.\n"
        "**Clinical Plan**\nDecrease levothyroxine after 6 weeks if TSH is suppressed.\n"
    )
    # The sub-heading's text still belongs to the Thyroid section
    assert rules(reply) == ["conflicting_recommendation"]


def test_reply_is_not_modified():
    reply = "Normal range mentioned."
    lint_reply(reply)
    assert reply == "Normal range mentioned."
