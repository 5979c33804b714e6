from skillex_server.models.user import SkillKind, SkillLevel, SkillRecord
from skillex_server.services.skills import SkillIndex, match_skills, norm, normalize_filter_tags


def index(teach=(), learn=(), level=None) -> SkillIndex:
    return SkillIndex.from_records([
        SkillRecord(kind=SkillKind.teach, tags=list(teach), level=level),
        SkillRecord(kind=SkillKind.learn, tags=list(learn), level=level),
    ])


def test_tags_are_normalized_once_and_keep_a_label():
    idx = index(teach=["  React ", "react", "Go"], learn=["Machine Learning", ""])

    assert idx.teach == {"react", "go"}
    assert idx.learn == {"machine learning"}
    assert idx.label("react") == "React"
    assert idx.labelled(idx.teach) == ["Go", "React"]
    assert idx.size == 3


def test_norm():
    assert norm("  PyThOn ") == "python"
    assert norm(None) == ""


def test_complementary_sets_in_both_directions():
    requester = index(teach=["Python"], learn=["React"])
    candidate = index(teach=["react"], learn=["Go"])

    m = match_skills(requester, candidate)

    assert m.teach_to_learn == frozenset()
    assert m.learn_to_teach == {"react"}
    assert not m.bidirectional
    assert m.overlap() == ["react"]


def test_bidirectional_match():
    requester = index(teach=["Python", "SQL"], learn=["React"])
    candidate = index(teach=["React"], learn=["python"])

    m = match_skills(requester, candidate)

    assert m.teach_to_learn == {"python"}
    assert m.learn_to_teach == {"react"}
    assert m.bidirectional
    assert m.count == 2


def test_same_side_skills_do_not_match():
    requester = index(teach=["Python"])
    candidate = index(teach=["Python"])

    assert match_skills(requester, candidate).is_empty()


def test_levels_are_tracked_per_tag():
    idx = index(teach=["Rust"], level=SkillLevel.expert)

    assert idx.has_level(SkillLevel.expert)
    assert not idx.has_level(SkillLevel.beginner)
    assert not index(teach=["Rust"]).has_level(SkillLevel.expert)


def test_filter_tags():
    assert normalize_filter_tags([" React", "GO"]) == {"react", "go"}
    assert normalize_filter_tags([]) is None
    assert normalize_filter_tags(None) is None
