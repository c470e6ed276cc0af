"""Player skill progress, level-ups and decay."""

from typing import Optional

from config import CONFIG, PersonalConfig
from models import PlayerState, Skill


def get_or_create_skill(player: PlayerState, name: str) -> Skill:
    skill = player.skills.get(name)
    if skill is None:
        skill = Skill(name=name)
        player.skills[name] = skill
    return skill


def add_skill_progress(
    player: PlayerState,
    name: str,
    amount: float,
    turn: int,
    cfg: Optional[PersonalConfig] = None,
) -> int:
    """
    Add progress to a skill and mark it practiced this turn.

    Returns:
        Number of levels gained
    """
    cfg = cfg or CONFIG.personal
    skill = get_or_create_skill(player, name)
    skill.last_practiced_turn = turn
    if skill.level >= cfg.max_skill_level:
        skill.progress = 0.0
        return 0

    skill.progress += amount
    gained = 0
    while skill.progress >= cfg.skill_progress_per_level and skill.level < cfg.max_skill_level:
        skill.progress -= cfg.skill_progress_per_level
        skill.level += 1
        gained += 1
    if skill.level >= cfg.max_skill_level:
        skill.progress = 0.0
    return gained


def add_skill_levels(player: PlayerState, name: str, levels: int, turn: int,
                     cfg: Optional[PersonalConfig] = None) -> int:
    """Grant whole levels (courses); returns how many actually applied under the cap."""
    cfg = cfg or CONFIG.personal
    skill = get_or_create_skill(player, name)
    before = skill.level
    skill.level = min(cfg.max_skill_level, skill.level + max(0, levels))
    skill.last_practiced_turn = turn
    return skill.level - before


def decay_skill(skill: Skill, turn: int, cfg: Optional[PersonalConfig] = None) -> bool:
    """
    Unpracticed skills lose progress once the grace period is over.

    Returns:
        True when the skill dropped a level
    """
    cfg = cfg or CONFIG.personal
    idle = turn - skill.last_practiced_turn
    if idle <= cfg.skill_decay_grace_quarters or (skill.level == 0 and skill.progress <= 0):
        return False

    skill.progress -= cfg.skill_decay_rate * (idle - cfg.skill_decay_grace_quarters)
    if skill.progress >= 0:
        return False
    if skill.level > 0:
        skill.level -= 1
        skill.progress = max(0.0, skill.progress + cfg.skill_progress_per_level)
        return True
    skill.progress = 0.0
    return False
