"""
Trigger evaluation: decides whether a message should open a lead.

Rules are evaluated in the order given (highest priority first) and the first
matching rule wins. With no rules at all, only the first-ever message of an
identity opens a lead.
"""

from typing import Callable, Iterable, Optional, Sequence

from integration_hub.enums import KeywordMatchType, TriggerType
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


def check_keywords(text: Optional[str], keywords: Optional[Sequence[str]], match_type: str = KeywordMatchType.ANY.value) -> bool:
    """Case-insensitive substring match under `any` or `all` semantics."""
    keywords = [k.strip().lower() for k in (keywords or []) if k and k.strip()]
    if not keywords:
        return False
    lower_text = (text or "").lower()

    if match_type == KeywordMatchType.ALL.value:
        return all(keyword in lower_text for keyword in keywords)

    # Anything other than "all" is treated as "any"
    return any(keyword in lower_text for keyword in keywords)


def rule_matches(rule, message_text: str, is_first_message: Callable[[], bool]) -> bool:
    trigger_type = rule.trigger_type
    if trigger_type == TriggerType.ALWAYS.value:
        return True
    if trigger_type == TriggerType.FIRST_MESSAGE.value:
        return is_first_message()
    if trigger_type == TriggerType.KEYWORDS.value:
        return check_keywords(message_text, rule.keywords, rule.keywords_match_type or KeywordMatchType.ANY.value)
    logger.warning(f"⚠️ Ignoring trigger rule {getattr(rule, 'id', '?')} with unknown type '{trigger_type}'")
    return False


def evaluate_triggers(rules: Iterable, message_text: str, is_first_message: Callable[[], bool]) -> bool:
    """
    Args:
        rules: active trigger rules, highest priority first
        message_text: text of the message being routed
        is_first_message: lazily answers whether this is the identity's first message
    """
    rules = list(rules)
    if not rules:
        return is_first_message()

    for rule in rules:
        if rule_matches(rule, message_text, is_first_message):
            logger.debug(f"Trigger rule {getattr(rule, 'id', '?')} ({rule.trigger_type}) matched")
            return True

    return False
