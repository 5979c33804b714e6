import pytest

from skillex_server.errors import InvalidRequest
from skillex_server.services.availability import Overlap, overlap
from skillex_server.services.ranking import profile_mask
from skillex_server.services.scoring import (
    FALLBACK_REASON,
    ScoringConfig,
    Weights,
    location_match,
    rank_terms,
    recency_score,
    score_candidate,
    skill_score,
)
from skillex_server.services.skills import SkillIndex, match_skills
from skillex_server.testing import NOW, make_user


def score(requester, candidate, config=None):
    req_skills = SkillIndex.from_records(requester.skills)
    cand_skills = SkillIndex.from_records(candidate.skills)
    result = overlap(profile_mask(requester), profile_mask(candidate))
    return score_candidate(
        requester, req_skills, candidate, cand_skills,
        match_skills(req_skills, cand_skills), result,
        config or ScoringConfig(), NOW,
    )


def test_skill_score_counts_both_directions_over_requester_size():
    requester = SkillIndex.from_records(make_user("r", teach=["Python"], learn=["React"]).skills)
    candidate = SkillIndex.from_records(make_user("c", teach=["React"], learn=["Go"]).skills)

    assert skill_score(requester, match_skills(requester, candidate)) == 0.5


def test_bidirectional_matches_are_boosted():
    requester = SkillIndex.from_records(
        make_user("r", teach=["Python", "SQL"], learn=["React", "Go"]).skills
    )
    one_way = SkillIndex.from_records(make_user("a", teach=["React", "Go"]).skills)
    two_way = SkillIndex.from_records(make_user("b", teach=["React"], learn=["Python"]).skills)

    assert skill_score(requester, match_skills(requester, one_way)) == 0.5
    assert skill_score(requester, match_skills(requester, two_way)) == pytest.approx(0.625)


def test_boost_is_capped_at_one():
    requester = SkillIndex.from_records(make_user("r", teach=["Python"], learn=["React"]).skills)
    candidate = SkillIndex.from_records(make_user("c", teach=["React"], learn=["Python"]).skills)

    assert skill_score(requester, match_skills(requester, candidate)) == 1.0


def test_requester_without_skills_scores_zero_on_skills():
    result = score(make_user("r"), make_user("c", teach=["React"]))
    assert result.skill == 0.0


def test_recency_half_life():
    assert recency_score(0, 14) == 1.0
    assert recency_score(14, 14) == pytest.approx(0.5)
    assert recency_score(28, 14) == pytest.approx(0.25)
    assert recency_score(None, 14) == 0.0


def test_future_last_active_counts_as_now():
    result = score(make_user("r"), make_user("c", active_days_ago=-3))
    assert result.recency == 1.0


def test_location_levels():
    berlin = make_user("a", city="Berlin", country="Germany")

    assert location_match(berlin, make_user("b", city=" berlin", country="GERMANY")) == "city"
    assert location_match(berlin, make_user("c", city="Munich", country="Germany")) == "country"
    assert location_match(berlin, make_user("d", city="Berlin")) == "city"
    assert location_match(berlin, make_user("e", city="Paris", country="France")) is None
    assert location_match(
        make_user("f", city="Paris", country="France"),
        make_user("g", city="Paris", country="USA"),
    ) is None


def test_default_weighted_sum():
    requester = make_user("r", teach=["React"], learn=["Go"], hours=range(10), city="Berlin", country="Germany")
    candidate = make_user(
        "c", teach=["Go"], learn=["React"], hours=range(5),
        city="Munich", country="Germany", active_days_ago=14,
    )

    result = score(requester, candidate)

    # skill 1.0 * 0.5 + availability 0.5 * 0.3 + recency 0.5 * 0.1 + location 0.5 * 0.1
    assert result.score == 75.0


def test_score_is_rounded_and_bounded():
    requester = make_user("r", teach=["A", "B", "C"], hours=range(3))
    candidate = make_user("c", learn=["a"], hours=[0], active_days_ago=3.3)

    result = score(requester, candidate)

    assert 0.0 <= result.score <= 100.0
    assert result.score == round(result.score, 2)


def test_score_is_monotonic_in_skill_overlap():
    requester = make_user("r", teach=["A", "B", "C", "D"], learn=["E", "F"], hours=range(8), active_days_ago=0)
    previous = -1.0
    for learned in (["a"], ["a", "b"], ["a", "b", "c"], ["a", "b", "c", "d"]):
        candidate = make_user("c", learn=learned, hours=range(4), active_days_ago=2)
        current = score(requester, candidate).score
        assert current >= previous
        previous = current


def test_weights_override_and_normalization():
    requester = make_user("r", teach=["React"], hours=range(4))
    candidate = make_user("c", learn=["React"], hours=range(2))

    skills_only = score(requester, candidate, ScoringConfig(weights=Weights(1, 0, 0, 0)))
    availability_only = score(requester, candidate, ScoringConfig(weights=Weights(0, 2, 0, 0)))

    assert skills_only.score == 100.0
    assert availability_only.score == 50.0


def test_all_zero_weights_are_rejected():
    with pytest.raises(InvalidRequest):
        Weights(0, 0, 0, 0).normalized()
    with pytest.raises(InvalidRequest):
        Weights(-1, 1, 0, 0).normalized()


def test_reason_names_the_two_strongest_terms():
    requester = make_user("r", teach=["React"], learn=["Go"], hours=range(10))
    candidate = make_user("c", teach=["Go"], learn=["React"], hours=range(2))

    result = score(requester, candidate)

    assert result.reason == "You can teach React and learn Go; you share 2 overlapping hours per week."


def test_reason_ties_follow_fixed_priority():
    requester = make_user("r", hours=range(3), city="Berlin", country="Germany")
    candidate = make_user("c", hours=range(3), city="Berlin", country="Germany")

    result = score(requester, candidate, ScoringConfig(weights=Weights(1, 1, 1, 1)))

    assert rank_terms(result.contributions) == ["availability", "location"]
    assert result.reason == "You share 3 overlapping hours per week; you are both in Berlin."


def test_reason_mentions_recency_and_single_hour():
    requester = make_user("r", hours=[5])
    candidate = make_user("c", hours=[5], active_days_ago=1.5)

    result = score(requester, candidate)

    assert result.reason == "You share 1 overlapping hour per week; they were active yesterday."


def test_reason_lists_many_skills_compactly():
    requester = make_user("r", teach=["A", "B", "C", "D", "E"])
    candidate = make_user("c", learn=["a", "b", "c", "d", "e"])

    assert score(requester, candidate).reason == "You can teach a, b, c and 2 more."


def test_reason_falls_back_when_nothing_scores():
    result = score(make_user("r"), make_user("c"))
    assert result.score == 0.0
    assert result.reason == FALLBACK_REASON


def test_identical_inputs_give_identical_reasons():
    requester = make_user("r", teach=["Python"], learn=["React"], hours=range(20), city="Lyon", country="France")
    candidate = make_user("c", teach=["React"], learn=["Python"], hours=range(10, 30), city="Paris", country="France")

    assert score(requester, candidate) == score(requester, candidate)


def test_zero_overlap_result_is_valid_input():
    requester = make_user("r", teach=["React"])
    candidate = make_user("c", learn=["React"])
    req_skills = SkillIndex.from_records(requester.skills)
    cand_skills = SkillIndex.from_records(candidate.skills)

    result = score_candidate(
        requester, req_skills, candidate, cand_skills,
        match_skills(req_skills, cand_skills), Overlap(0, 0.0), ScoringConfig(), NOW,
    )

    assert result.availability == 0.0
