"""
Player life steps of the turn pipeline: education, jobs, personal life,
buffs, lifestyle costs and stat thresholds.
"""

import logging
from typing import Dict, List, Optional, Tuple

from inflation import get_inflated_price, get_quarterly_inflated_salary
from models import STAT_NAMES, CyclePhase, FamilyMember, Job, JobApplication, PlayerState
from numeric import clamp, js_round, safe_number
from skills import add_skill_levels, add_skill_progress, decay_skill
from turn_state import TurnContext, TurnState

logger = logging.getLogger(__name__)

PARTNER_NAMES = ("Maria", "Anna", "Elena", "Victoria", "Sofia", "Alice", "Daria", "Paula")
PARTNER_JOBS = (("Factory worker", 3000), ("Office clerk", 18000), ("Marketing specialist", 22500))
CHILD_NAMES = ("Alex", "Sasha", "Misha", "Nika", "Lev", "Eva")


def education_step(ctx: TurnContext, ts: TurnState) -> None:
    """Count down courses; finished ones grant skill levels."""
    player = ts.state.player
    cfg = ctx.config.personal
    remaining = []
    for course in player.courses:
        course.quarters_left -= 1
        ts.add_stat("energy", -cfg.study_energy_cost)
        if course.quarters_left > 0:
            remaining.append(course)
            continue

        gained = add_skill_levels(player, course.skill, course.levels, ts.new_turn, cfg)
        ts.add_stat("intelligence", cfg.course_intelligence_gain)
        kind = "University" if course.is_university else "Course"
        ts.notify(f"course_done_{course.id}_{ts.new_turn}", "success", f"{kind} completed",
                  f"You completed {course.name}. {course.skill} +{gained} "
                  f"(level {player.skills[course.skill].level}).")
    player.courses = remaining


def firing_risk(job: Job, phase: Optional[CyclePhase], turn: int, ctx: TurnContext) -> float:
    cfg = ctx.config.personal
    tenure = turn - job.start_turn
    risk = cfg.base_firing_risk
    if phase is CyclePhase.RECESSION:
        risk += cfg.recession_firing_risk
    elif phase is CyclePhase.GROWTH:
        risk -= cfg.growth_firing_relief
    if tenure < cfg.new_hire_tenure:
        risk += cfg.new_hire_firing_risk
    elif tenure > cfg.veteran_tenure:
        risk -= cfg.veteran_firing_relief
    return clamp(risk, 0.0, cfg.max_firing_risk)


def match_application(player: PlayerState, application: JobApplication) -> Tuple[bool, int]:
    """(all requirements met, surplus levels above the requirements)."""
    matched = True
    score = 0
    for skill_name, required in application.required_skills.items():
        level = player.skill_level(skill_name)
        if level < required:
            matched = False
        else:
            score += level - required
    return matched, score


def offer_chance(matched: bool, score: int, ctx: TurnContext) -> float:
    cfg = ctx.config.personal
    if not matched:
        return cfg.unmatched_offer_chance
    return min(cfg.max_offer_chance, cfg.matched_offer_chance + cfg.match_score_bonus * score)


def jobs_step(ctx: TurnContext, ts: TurnState) -> None:
    """Pay salaries, run firings, resolve applications and decay idle skills."""
    player = ts.state.player
    cfg = ctx.config.personal
    country = ts.country()
    phase = country.cycle.phase if country and country.cycle else None

    kept: List[Job] = []
    for job in player.jobs:
        if ctx.rng.random() < firing_risk(job, phase, ts.new_turn, ctx):
            logger.info("Player lost job %s", job.id)
            ts.notify(f"fired_{job.id}_{ts.new_turn}", "warning", "You were let go",
                      f"{job.company} ended your contract as {job.title}.")
            continue
        kept.append(job)

        tenure = ts.new_turn - job.start_turn
        salary = job.salary
        if country is not None:
            salary = get_quarterly_inflated_salary(job.salary, country, tenure, ctx.rng)
        ts.add_income("salary", safe_number(salary, 0.0))
        for stat, delta in job.stat_costs.items():
            ts.add_stat(stat, delta)

        if job.skill and player.skill_level(job.skill) < cfg.job_practice_level_cap:
            if add_skill_progress(player, job.skill, cfg.job_practice_progress, ts.new_turn, cfg):
                ts.notify(f"skill_up_{job.skill}_{job.id}_{ts.new_turn}", "success", "Skill improved",
                          f"Practice at work raised {job.skill} to level {player.skills[job.skill].level}.")
        elif job.skill:
            player.skills[job.skill].last_practiced_turn = ts.new_turn
    player.jobs = kept

    for application in player.applications:
        matched, score = match_application(player, application)
        if ctx.rng.random() < offer_chance(matched, score, ctx):
            job = application.job
            job.start_turn = ts.new_turn
            player.jobs.append(job)
            ts.notify(f"job_offer_{application.id}", "success", "Job offer accepted",
                      f"You start as {job.title} at {job.company}.")
        else:
            ts.notify(f"job_rejected_{application.id}", "info", "Application declined",
                      f"{application.job.company} chose another candidate for {application.job.title}.")
    player.applications = []

    for skill in player.skills.values():
        if decay_skill(skill, ts.new_turn, cfg):
            ts.notify(f"skill_decay_{skill.name}_{ts.new_turn}", "warning", "Skill is fading",
                      f"Without practice your {skill.name} skill dropped to level {skill.level}.")


def personal_step(ctx: TurnContext, ts: TurnState) -> None:
    """Dating, pregnancy and birthdays."""
    player = ts.state.player
    personal = player.personal
    cfg = ctx.config.personal
    rng = ctx.rng

    if personal.is_dating and personal.potential_partner is None:
        if rng.random() < cfg.partner_search_chance:
            occupation, income = rng.choice(PARTNER_JOBS)
            personal.potential_partner = FamilyMember(
                id=f"partner_{ts.new_turn}",
                name=rng.choice(PARTNER_NAMES),
                relation="partner",
                age=player.age - 2 + rng.randint(0, 4),
                occupation=occupation,
                income=income,
            )
            personal.is_dating = False
            ts.notify(f"dating_success_{ts.new_turn}", "success", "A successful date",
                      f"You met {personal.potential_partner.name}, who works as {occupation}.")
        else:
            ts.notify(f"dating_fail_{ts.new_turn}", "info", "Still looking",
                      "No match this quarter. The search goes on.")

    if personal.pregnancy_quarters_left is not None:
        personal.pregnancy_quarters_left -= 1
        if personal.pregnancy_quarters_left <= 0:
            child = FamilyMember(id=f"child_{ts.new_turn}", name=rng.choice(CHILD_NAMES), relation="child")
            personal.family_members.append(child)
            personal.pregnancy_quarters_left = None
            ts.add_stat("happiness", cfg.child_happiness_boost)
            ts.notify(f"birth_{ts.new_turn}", "success", "A child is born",
                      f"Welcome {child.name} to the family!")

    if ts.new_year != ts.state.year:
        player.age += 1
        for member in personal.family_members:
            member.age += 1


def buffs_step(ctx: TurnContext, ts: TurnState) -> None:
    """Apply active buffs, then count them down."""
    player = ts.state.player
    active = []
    for buff in player.buffs:
        for key, value in buff.effects.items():
            if key == "money":
                ts.buff_income_pct += safe_number(value, 0.0)
            elif key in STAT_NAMES:
                ts.add_stat(key, safe_number(value, 0.0))
        buff.duration -= 1
        if buff.duration > 0:
            active.append(buff)
        else:
            ts.notify(f"buff_expired_{buff.id}_{ts.new_turn}", "info", "Effect ended",
                      f"{buff.title} has worn off.")
    player.buffs = active


def lifestyle_costs(player: PlayerState, country, ctx: TurnContext) -> Dict[str, float]:
    """Quarterly household costs, indexed by category inflation and cost of living."""
    cfg = ctx.config.personal
    adults = 1 + sum(1 for m in player.personal.family_members if m.relation != "child")
    children = sum(1 for m in player.personal.family_members if m.relation == "child")
    modifier = safe_number(country.cost_of_living_modifier, 1.0) if country else 1.0

    def indexed(base: float, category: str) -> float:
        price = get_inflated_price(base, country, category) if country else base
        return js_round(price * modifier)

    return {
        "food": indexed(cfg.food_cost * (adults + children), "food"),
        "housing": indexed(cfg.housing_cost, "housing"),
        "transport": indexed(cfg.transport_cost * adults, "transport"),
        "children": indexed(cfg.child_cost * children, "default"),
    }


def lifestyle_step(ctx: TurnContext, ts: TurnState) -> None:
    costs = lifestyle_costs(ts.state.player, ts.country(), ctx)
    for line, amount in costs.items():
        if amount:
            ts.add_expense(line, amount)
    ts.add_stat("energy", ctx.config.personal.energy_recovery)


def threshold_effects(stats: Dict[str, float], ctx: TurnContext) -> Tuple[Dict[str, float], List[Tuple[str, str, str]]]:
    """Medical and therapy bills plus (severity, title, message) warnings for low stats."""
    cfg = ctx.config.personal
    costs = {"medical": 0.0, "therapy": 0.0}
    warnings = []

    health = stats["health"]
    if health < cfg.stat_critical_level:
        costs["medical"] = cfg.severe_medical_cost
        warnings.append(("error", "Hospitalized", "Severe illness. You need expensive treatment."))
    elif health < cfg.stat_danger_level:
        costs["medical"] = cfg.medical_cost
        warnings.append(("warning", "Poor health", "You need treatment. Your efficiency is down."))
    elif health < cfg.stat_warning_level:
        warnings.append(("warning", "Health is slipping", "Rest and eat better."))

    sanity = stats["sanity"]
    if sanity < cfg.stat_critical_level:
        costs["therapy"] = cfg.severe_therapy_cost
        warnings.append(("error", "Panic", "You are losing control. Therapy is urgent."))
    elif sanity < cfg.stat_danger_level:
        costs["therapy"] = cfg.therapy_cost
        warnings.append(("warning", "On the edge", "You are close to a breakdown."))
    elif sanity < cfg.stat_warning_level:
        warnings.append(("warning", "Anxiety", "Consider a break or a therapist."))

    if stats["happiness"] < cfg.stat_warning_level:
        warnings.append(("warning", "Low mood", "Your happiness is low. Find time for yourself."))
    if stats["intelligence"] < cfg.stat_warning_level:
        warnings.append(("warning", "Mental fatigue", "Learning is getting harder."))
    return costs, warnings


def check_defeat_conditions(stats: Dict[str, float]) -> Optional[str]:
    if stats["health"] <= 0:
        return "DEATH"
    if stats["sanity"] <= 0:
        return "MENTAL_BREAKDOWN"
    if stats["intelligence"] <= 0:
        return "DEGRADATION"
    if stats["happiness"] <= 0:
        return "DEPRESSION"
    return None


DEFEAT_MESSAGES = {
    "DEATH": ("Death", "Your health fell to zero."),
    "MENTAL_BREAKDOWN": ("Mental breakdown", "Your sanity fell to zero."),
    "DEGRADATION": ("Degradation", "Your intelligence fell to zero."),
    "DEPRESSION": ("Depression", "Your happiness fell to zero."),
}


def thresholds_step(ctx: TurnContext, ts: TurnState) -> None:
    """Apply the quarter's stat deltas, clamp, bill low stats and check for defeat."""
    player = ts.state.player
    stats = {}
    for name in STAT_NAMES:
        current = safe_number(getattr(player.stats, name), 0.0)
        stats[name] = clamp(current + ts.stat_modifiers.get(name, 0.0), 0.0, 100.0)
        setattr(player.stats, name, round(stats[name], 1))

    costs, warnings = threshold_effects(stats, ctx)
    for line, amount in costs.items():
        if amount:
            ts.add_expense(line, amount)
    for index, (severity, title, message) in enumerate(warnings):
        ts.notify(f"threshold_{ts.new_turn}_{index}", severity, title, message)

    reason = check_defeat_conditions(stats)
    if reason is not None:
        ts.game_over_reason = reason
        title, message = DEFEAT_MESSAGES[reason]
        logger.info("Game over at turn %d: %s", ts.new_turn, reason)
        ts.notify(f"game_over_{ts.new_turn}", "error", title, f"{message} The game is over.")
