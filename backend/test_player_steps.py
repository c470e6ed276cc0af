"""
Unit tests for the player life steps and skills

Tests cover:
- Firing risk and job offers
- Skill progress, course completion and decay
- Buffs and lifestyle costs
- Stat thresholds and defeat conditions
"""

from business_step import business_step
from config import CONFIG
from models import Buff, Course, CyclePhase, FamilyMember, Job, JobApplication, PlayerState, Skill
from player_steps import (
    buffs_step,
    check_defeat_conditions,
    education_step,
    firing_risk,
    jobs_step,
    lifestyle_costs,
    match_application,
    offer_chance,
    threshold_effects,
    thresholds_step,
)
from skills import add_skill_levels, add_skill_progress, decay_skill


def _stats(**overrides):
    stats = {"happiness": 70.0, "health": 80.0, "sanity": 70.0, "intelligence": 60.0, "energy": 80.0}
    stats.update(overrides)
    return stats


class TestJobs:
    """Firing risk and applications"""

    def test_recession_raises_firing_risk(self, turn):
        ctx, _ = turn
        job = Job(id="j", title="Clerk", company="Co", salary=9000, start_turn=0)
        # 1% base + 15% recession, tenure 10 is neither new nor veteran
        assert abs(firing_risk(job, CyclePhase.RECESSION, 10, ctx) - 0.16) < 1e-9

    def test_new_hire_in_growth(self, turn):
        ctx, _ = turn
        job = Job(id="j", title="Clerk", company="Co", salary=9000, start_turn=8)
        # 1% - 0.5% + 10%
        assert abs(firing_risk(job, CyclePhase.GROWTH, 10, ctx) - 0.105) < 1e-9

    def test_veteran_risk_floors_at_zero(self, turn):
        ctx, _ = turn
        job = Job(id="j", title="Clerk", company="Co", salary=9000, start_turn=0)
        assert firing_risk(job, CyclePhase.GROWTH, 20, ctx) == 0.0

    def test_offer_chance(self, turn):
        ctx, _ = turn
        assert abs(offer_chance(True, 2, ctx) - 0.8) < 1e-9
        assert offer_chance(True, 10, ctx) == 0.95
        assert offer_chance(False, 0, ctx) == 0.05

    def test_match_application(self):
        player = PlayerState(id="p", name="P", country_id="c",
                             skills={"Sales": Skill(name="Sales", level=3)})
        job = Job(id="j", title="Seller", company="Co", salary=9000)
        assert match_application(player, JobApplication(id="a", job=job, required_skills={"Sales": 1})) == (True, 2)
        assert match_application(player, JobApplication(id="a", job=job, required_skills={"Law": 1}))[0] is False

    def test_salary_is_paid(self, turn):
        ctx, ts = turn
        ts.state.player.jobs = [Job(id="j", title="Clerk", company="Co", salary=9000, start_turn=ts.new_turn)]
        jobs_step(ctx, ts)
        # Fixed draws of 0.5 never fire anyone at these risks
        assert ts.income["salary"] == 9000
        assert len(ts.state.player.jobs) == 1

    def test_applications_are_resolved(self, turn):
        ctx, ts = turn
        job = Job(id="new", title="Analyst", company="Bank", salary=12000)
        ts.state.player.jobs = []
        ts.state.player.applications = [JobApplication(id="a1", job=job, required_skills={})]
        jobs_step(ctx, ts)
        assert [j.id for j in ts.state.player.jobs] == ["new"]
        assert ts.state.player.jobs[0].start_turn == ts.new_turn
        assert ts.state.player.applications == []


class TestSkills:
    """Progress, courses and decay"""

    def test_progress_levels_up(self):
        player = PlayerState(id="p", name="P", country_id="c")
        gained = add_skill_progress(player, "Sales", 250, turn=3)
        assert gained == 2
        assert player.skills["Sales"].level == 2
        assert player.skills["Sales"].progress == 50
        assert player.skills["Sales"].last_practiced_turn == 3

    def test_levels_capped_at_five(self):
        player = PlayerState(id="p", name="P", country_id="c",
                             skills={"Law": Skill(name="Law", level=4)})
        assert add_skill_levels(player, "Law", 3, turn=1) == 1
        assert player.skills["Law"].level == 5

    def test_decay_after_grace_period(self):
        skill = Skill(name="Sales", level=2, progress=10.0, last_practiced_turn=0)
        assert not decay_skill(skill, 4)
        # Idle 8: progress 10 - 5 * 4 = -10, drops a level
        assert decay_skill(skill, 8)
        assert skill.level == 1
        assert skill.progress == 90.0

    def test_course_completion(self, turn):
        ctx, ts = turn
        ts.state.player.courses = [Course(id="c1", name="Law school", skill="Law", levels=2, quarters_left=1)]
        education_step(ctx, ts)
        assert ts.state.player.courses == []
        assert ts.state.player.skills["Law"].level == 2
        assert ts.stat_modifiers["intelligence"] == CONFIG.personal.course_intelligence_gain
        assert any(n.title == "Course completed" for n in ts.notifications)


class TestBuffsAndLifestyle:
    """Buff countdown and household costs"""

    def test_buff_effects_and_expiry(self, turn):
        ctx, ts = turn
        ts.state.player.buffs = [
            Buff(id="b1", title="Vacation", duration=1, effects={"happiness": 10, "money": 5}),
            Buff(id="b2", title="Gym", duration=3, effects={"health": 2}),
        ]
        buffs_step(ctx, ts)
        assert ts.stat_modifiers["happiness"] == 10
        assert ts.stat_modifiers["health"] == 2
        assert ts.buff_income_pct == 5
        assert [b.id for b in ts.state.player.buffs] == ["b2"]
        assert ts.state.player.buffs[0].duration == 2

    def test_children_add_costs(self, turn):
        ctx, ts = turn
        player = ts.state.player
        before = lifestyle_costs(player, None, ctx)
        player.personal.family_members.append(FamilyMember(id="k", name="Kid", relation="child"))
        after = lifestyle_costs(player, None, ctx)
        assert after["food"] > before["food"]
        assert after["children"] == CONFIG.personal.child_cost
        assert after["housing"] == before["housing"]


class TestThresholds:
    """Low stats cost money and can end the game"""

    def test_medical_and_therapy_costs(self, turn):
        ctx, _ = turn
        costs, warnings = threshold_effects(_stats(health=5, sanity=15), ctx)
        assert costs == {"medical": 2000, "therapy": 500}
        assert len(warnings) == 2

    def test_warning_below_30(self, turn):
        ctx, _ = turn
        costs, warnings = threshold_effects(_stats(happiness=25), ctx)
        assert costs == {"medical": 0.0, "therapy": 0.0}
        assert warnings[0][1] == "Low mood"

    def test_defeat_conditions(self):
        assert check_defeat_conditions(_stats(health=0)) == "DEATH"
        assert check_defeat_conditions(_stats(sanity=0)) == "MENTAL_BREAKDOWN"
        assert check_defeat_conditions(_stats(intelligence=0)) == "DEGRADATION"
        assert check_defeat_conditions(_stats(happiness=0)) == "DEPRESSION"
        assert check_defeat_conditions(_stats()) is None

    def test_stats_clamped_and_defeat_recorded(self, turn):
        ctx, ts = turn
        ts.state.player.stats.health = 5.0
        ts.state.player.stats.energy = 95.0
        ts.add_stat("health", -20)
        ts.add_stat("energy", 30)
        thresholds_step(ctx, ts)
        assert ts.state.player.stats.health == 0.0
        assert ts.state.player.stats.energy == 100.0
        assert ts.game_over_reason == "DEATH"
        assert ts.expenses["medical"] == 2000


class TestSkillNotifications:
    """Level-up notices name the job or business that trained the skill"""

    def test_job_and_business_level_the_same_skill(self, turn):
        ctx, ts = turn
        player = ts.state.player
        player.skills["Marketing"].progress = 95.0
        ts.state.player.jobs = [Job(id="j1", title="Promoter", company="Co", salary=5000,
                                    start_turn=ts.new_turn, skill="Marketing")]
        jobs_step(ctx, ts)

        # Close to the next level again before the cafe shift
        player.skills["Marketing"].progress = 95.0
        business_step(ctx, ts)

        ids = [n.id for n in ts.notifications if n.id.startswith("skill_up_Marketing")]
        assert f"skill_up_Marketing_j1_{ts.new_turn}" in ids
        assert f"skill_up_Marketing_biz_service_{ts.new_turn}" in ids
        assert len(ids) == len(set(ids))
