import pytest

from genedai.agents.keyword_agent import UNNAMED_COURSE, KeywordAgent
from genedai.catalog import RequirementCatalog
from genedai.overrides import count_creative_terms
from genedai.schemas import RequirementDefinition

SYNTHETIC = RequirementDefinition(
    name="Synthetic Requirement",
    description="Five elements, five outcomes.",
    slos=["Bison falcon.", "Heron jackal.", "Koala lemur.", "Mantis newt.", "Otter panda."],
    required_elements=["zephyr quokka", "marmot lynx", "ocelot tapir", "wombat dingo", "narwhal okapi"],
)


@pytest.fixture
def agent():
    return KeywordAgent()


@pytest.fixture
def synthetic_catalog():
    return RequirementCatalog([SYNTHETIC])


def test_three_of_five_is_approved(agent, synthetic_catalog):
    text = "zephyr quokka. marmot lynx. ocelot tapir. bison falcon. heron jackal. koala lemur."
    outcome = agent.evaluate(text, synthetic_catalog)

    assert [a.name for a in outcome.approved] == ["Synthetic Requirement"]
    assert outcome.approved[0].matching_requirements == ["zephyr quokka", "marmot lynx", "ocelot tapir"]
    assert outcome.approved[0].matching_slos == [1, 2, 3]
    assert outcome.rejected == []


def test_two_of_five_is_rejected(agent, synthetic_catalog):
    text = "zephyr quokka. marmot lynx. bison falcon. heron jackal."
    outcome = agent.evaluate(text, synthetic_catalog)

    assert outcome.approved == []
    rejected = outcome.rejected[0]
    assert rejected.missing_requirements == ["ocelot tapir", "wombat dingo", "narwhal okapi"]
    assert rejected.missing_slos == [3, 4, 5]


def test_both_thresholds_are_required(agent, synthetic_catalog):
    # all elements, only two outcomes
    text = "zephyr quokka marmot lynx ocelot tapir wombat dingo narwhal okapi. bison falcon. heron jackal."
    outcome = agent.evaluate(text, synthetic_catalog)
    assert outcome.approved == []
    assert outcome.rejected[0].missing_requirements == []
    assert outcome.rejected[0].missing_slos == [3, 4, 5]


def test_keyword_overlap_ignores_word_order_and_short_words(agent):
    text = "students will practice data analysis and the components of it"
    assert agent.is_present(text, "Data analysis components")
    assert agent.keyword_overlap("the and of it", "The and of it") is False


def test_punctuated_tokens_must_appear_with_their_punctuation(agent, catalog):
    slo = catalog.get("Quantitative Reasoning").slos[0]
    assert slo == "Interpret quantitative information."

    # "information." is a token of its own; the bare word does not count
    assert not agent.is_present("students interpret quantitative information and data", slo)
    assert agent.is_present("information. students interpret quantitative data", slo)


def test_punctuated_slo_is_reported_missing(agent, catalog):
    quant_only = RequirementCatalog([catalog.get("Quantitative Reasoning")])
    outcome = agent.evaluate("Students interpret quantitative information and data", quant_only)

    assert 1 in outcome.rejected[0].missing_slos


def test_keyword_overlap_needs_seventy_percent(agent):
    # 2 of 3 long words present is below 0.7
    assert not agent.is_present("hypothesis driven work", "Hypothesis testing driven")
    assert agent.is_present("hypothesis testing", "Hypothesis testing driven") is False
    assert agent.is_present("driven hypothesis testing", "Hypothesis testing driven")


def test_every_requirement_lands_in_exactly_one_list(agent, catalog):
    text = "Students analyze data with statistical methods and write research papers with revision."
    outcome = agent.evaluate(text, catalog)

    approved = {a.name for a in outcome.approved}
    rejected = {r.name for r in outcome.rejected}
    assert approved.isdisjoint(rejected)
    assert approved | rejected == set(catalog.names())
    assert outcome.unassessed_requirements == []


def test_empty_text_matches_nothing(agent, catalog):
    outcome = agent.evaluate("", catalog)
    assert outcome.approved == []
    assert len(outcome.rejected) == len(catalog)
    assert outcome.course_name == UNNAMED_COURSE
    assert outcome.course_code == ""


def test_evaluation_is_deterministic(agent, catalog):
    text = "MATH 2210 Statistics\nQuantitative problem-solving with data analysis components."
    assert agent.evaluate(text, catalog) == agent.evaluate(text, catalog)


def _creativity_text(catalog, occurrences):
    creativity = catalog.get("Creativity and Making")
    base = " ".join([*creativity.required_elements, *creativity.slos]).lower()
    existing = count_creative_terms(base)
    assert existing <= occurrences
    return base + " studio" * (occurrences - existing)


def test_creativity_rejected_below_ten_creative_terms(agent, catalog):
    creativity_only = RequirementCatalog([catalog.get("Creativity and Making")])
    text = _creativity_text(catalog, 9)
    assert count_creative_terms(text) == 9

    outcome = agent.evaluate(text, creativity_only)

    assert outcome.approved == []
    missing = outcome.rejected[0].missing_requirements
    assert "More than half of course content must be dedicated to creative activities" in missing


def test_creativity_approved_with_ten_creative_terms(agent, catalog):
    creativity_only = RequirementCatalog([catalog.get("Creativity and Making")])
    text = _creativity_text(catalog, 10)

    outcome = agent.evaluate(text, creativity_only)

    assert [a.name for a in outcome.approved] == ["Creativity and Making"]


def test_course_code_and_name_extraction(agent):
    name, code = agent.extract_course_info("Fall 2024\nCSCI 3351 Intro to Systems\nProfessor Smith\n")
    assert code == "CSCI 3351"
    assert "Intro to Systems" in name


def test_course_code_without_space_and_with_separator(agent):
    name, code = agent.extract_course_info("PHIL220: Moral Philosophy\n")
    assert code == "PHIL 220"
    assert name == "Moral Philosophy"


def test_course_name_stops_at_the_line_break(agent):
    assert agent.extract_course_info("CSCI 3351\nIntro to Systems\n") == (UNNAMED_COURSE, "CSCI 3351")


def test_course_code_must_start_a_word(agent):
    assert agent.extract_course_info("SYLLABUS 2024\nWelcome to class\n") == (UNNAMED_COURSE, "")


def test_missing_course_code_uses_placeholder(agent):
    assert agent.extract_course_info("an introduction to everything\n") == (UNNAMED_COURSE, "")
