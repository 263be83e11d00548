"""
Движок правил бейджей.

Бейдж описывается списком правил вида
``{"condition": <поле статистики>, "operator": <оператор>, "value": <число>}``.
Бейдж доступен пользователю, только если выполняются ВСЕ его правила.
Отсутствующее поле статистики, неизвестный оператор или пустой список
правил делают бейдж недоступным (fail-closed), исключение при этом не
поднимается.

Выдача бейджей запускается в фоне после завершения челленджа
(``assign_badges_in_background``); для тестов и ручных вызовов есть
синхронный вариант ``check_and_assign_badges``.
"""

import enum
import logging
import operator
from typing import Any, Callable, Dict, Iterable, List, Mapping

from sqlalchemy.orm import Session

import database
from models import Badge, User
from services import badges as badge_service
from services import users as user_service

logger = logging.getLogger(__name__)


class StatField(str, enum.Enum):
    CHALLENGES_COMPLETED = "challenges_completed"
    TOTAL_CALORIES_BURNED = "total_calories_burned"
    STREAK_DAYS = "streak_days"
    TOTAL_SCORE = "total_score"


class RuleOperator(str, enum.Enum):
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "=="
    NE = "!="


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    RuleOperator.GT.value: operator.gt,
    RuleOperator.GTE.value: operator.ge,
    RuleOperator.LT.value: operator.lt,
    RuleOperator.LTE.value: operator.le,
    RuleOperator.EQ.value: operator.eq,
    RuleOperator.NE.value: operator.ne,
}

# Закрытое соответствие "имя поля -> значение у пользователя"
STAT_ACCESSORS: Dict[str, Callable[[User], Any]] = {
    StatField.CHALLENGES_COMPLETED.value: lambda u: u.challenges_completed or 0,
    StatField.TOTAL_CALORIES_BURNED.value: lambda u: u.total_calories_burned or 0,
    StatField.STREAK_DAYS.value: lambda u: u.streak_days or 0,
    StatField.TOTAL_SCORE.value: lambda u: u.total_score or 0,
}


def user_stats(user: User) -> Dict[str, Any]:
    return {name: accessor(user) for name, accessor in STAT_ACCESSORS.items()}


def evaluate_rule(rule: Mapping[str, Any], stats: Mapping[str, Any]) -> bool:
    if not isinstance(rule, Mapping):
        return False
    condition = rule.get("condition")
    if condition not in stats or stats[condition] is None:
        return False

    compare = OPERATORS.get(rule.get("operator"))
    if compare is None:
        logger.warning("Unknown badge rule operator: %r", rule.get("operator"))
        return False

    try:
        return bool(compare(stats[condition], rule.get("value")))
    except TypeError:
        return False


def is_eligible(rules: Iterable[Mapping[str, Any]], stats: Mapping[str, Any]) -> bool:
    rules = list(rules or [])
    if not rules:
        return False
    return all(evaluate_rule(rule, stats) for rule in rules)


def eligible_badges(badges: Iterable[Badge], stats: Mapping[str, Any]) -> List[Badge]:
    eligible = []
    for badge in badges:
        if not badge.rules:
            logger.warning("Badge %r has no rules defined", badge.name)
            continue
        if is_eligible(badge.rules, stats):
            eligible.append(badge)
    return eligible


def check_user_eligibility(db: Session, user: User) -> List[Badge]:
    return eligible_badges(badge_service.get_active_badges(db), user_stats(user))


def check_and_assign_badges(db: Session, user_id: int) -> List[Badge]:
    """Выдаёт пользователю все доступные бейджи, которых у него ещё нет.

    Повторный вызов при неизменной статистике ничего не меняет: уже
    выданные бейджи пропускаются, очки за них не начисляются снова.
    """
    user = user_service.get_user(db, user_id)
    if user is None:
        logger.warning("User %s not found, skipping badge check", user_id)
        return []

    granted = []
    for badge in check_user_eligibility(db, user):
        if user_service.add_badge(db, user.id, badge.id):
            user_service.increment_score(db, user.id, badge.points or 0)
            logger.info("Badge %r granted to user %s", badge.name, user.id)
            granted.append(badge)
    return granted


def assign_badges_in_background(user_id: int) -> None:
    # Своя сессия: сессия запроса к этому моменту уже закрыта
    db = database.SessionLocal()
    try:
        check_and_assign_badges(db, user_id)
    except Exception:
        logger.exception("Error checking badges for user %s", user_id)
    finally:
        db.close()
