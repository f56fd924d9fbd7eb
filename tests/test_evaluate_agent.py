import asyncio
import json
import logging

import pytest

from genedai.agents.evaluate_agent import UNKNOWN_COURSE, BatchOutcome, EvaluateAgent, merge_batches
from genedai.completion import CompletionService, parse_json_object
from genedai.exceptions import CompletionError, SemanticMatchError

COURSE = {"courseName": "Moral Philosophy", "courseCode": "PHIL 220"}
SYLLABUS = "PHIL 220 Moral Philosophy\nStudents study ethical theories and write essays."


def run(coro):
    return asyncio.run(coro)


def test_all_batches_succeed(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_met"])
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    assert [a.name for a in outcome.approved] == catalog.names()
    assert outcome.rejected == []
    assert outcome.unassessed_requirements == []
    assert (outcome.course_name, outcome.course_code) == ("Moral Philosophy", "PHIL 220")
    assert [kind for kind, _, _ in service.calls].count("batch") == 4


def test_batches_hold_three_requirements_in_catalog_order(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_met"])
    run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    sent = [responders["batch_names"](user) for kind, _, user in service.calls if kind == "batch"]
    assert sent == [catalog.names()[i:i + 3] for i in range(0, 12, 3)]
    systems = [system for kind, system, _ in service.calls if kind == "batch"]
    assert "Batch 1 of 4" in systems[0] and "Batch 4 of 4" in systems[3]


def test_failed_batch_leaves_requirements_unassessed(fake_service, responders, catalog):
    def flaky(system, user):
        if "Batch 2 of 4" in system:
            raise CompletionError("timed out")
        return responders["all_met"](system, user)

    service = fake_service(course=COURSE, batch=flaky)
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    dropped = catalog.names()[3:6]
    assert len(outcome.approved) == 9
    assert outcome.rejected == []
    assert outcome.unassessed_requirements == dropped
    assert not {a.name for a in outcome.approved} & set(dropped)


def test_every_batch_failing_raises(fake_service, catalog):
    service = fake_service(course=COURSE, batch=CompletionError("service down"))
    with pytest.raises(SemanticMatchError):
        run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))


def test_unconfigured_service_raises_before_any_call(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_met"], configured=False)
    with pytest.raises(SemanticMatchError):
        run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))
    assert service.calls == []


def test_course_identification_failure_uses_placeholders(fake_service, responders, catalog):
    service = fake_service(course=CompletionError("bad json"), batch=responders["all_met"])
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    assert (outcome.course_name, outcome.course_code) == (UNKNOWN_COURSE, "")
    assert len(outcome.approved) == 12


def test_null_course_fields_use_placeholders(fake_service, responders, catalog):
    service = fake_service(course={"courseName": None, "courseCode": None}, batch=responders["all_met"])
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))
    assert (outcome.course_name, outcome.course_code) == (UNKNOWN_COURSE, "")


def test_ethics_rejection_gets_department_explanation(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_not_met"])
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    ethics = next(r for r in outcome.rejected if r.name == "Ethics")
    assert ethics.missing_requirements[-1] == (
        "Ethics requirements can only be met by courses offered by the Philosophy department"
    )
    assert ethics.missing_requirements[:-1] == list(catalog.get("Ethics").required_elements)


def test_creativity_rejection_gets_content_explanation(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_not_met"])
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    creativity = next(r for r in outcome.rejected if r.name == "Creativity and Making")
    assert creativity.missing_requirements == [
        *catalog.get("Creativity and Making").required_elements,
        "More than half of course content must be dedicated to creative activities",
    ]


def test_override_rules_reach_the_prompt(fake_service, responders, catalog):
    service = fake_service(course=COURSE, batch=responders["all_met"])
    run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    prompts = {
        tuple(responders["batch_names"](user)): system
        for kind, system, user in service.calls if kind == "batch"
    }
    ethics_prompt = next(s for names, s in prompts.items() if "Ethics" in names)
    assert "Philosophy department" in ethics_prompt
    first_prompt = next(s for names, s in prompts.items() if "Quantitative Reasoning" in names)
    assert "MODERN LANGUAGE" in first_prompt
    assert "ETHICS" not in first_prompt


def test_model_output_is_normalised(fake_service, catalog):
    quant = catalog.get("Quantitative Reasoning")

    def messy(system, user):
        return {"results": [
            {
                "requirement": " quantitative reasoning ",
                "status": "met",
                "matchingElements": [quant.required_elements[0].upper(), "Invented element"],
                "matchingSLOs": [3, 1, 1, 7, 0],
            },
            {"requirement": "Quantitative Reasoning", "status": "NOT_MET"},
            {"requirement": "Astrology", "status": "MET"},
            {"requirement": "Modern Language", "status": "not_met", "missingSLOs": None},
        ]}

    service = fake_service(course=COURSE, batch=messy)
    outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    assert [a.name for a in outcome.approved] == ["Quantitative Reasoning"]
    approved = outcome.approved[0]
    assert approved.matching_requirements == [quant.required_elements[0]]
    assert approved.matching_slos == [1, 3]

    modern = next(r for r in outcome.rejected if r.name == "Modern Language")
    assert modern.missing_slos == []
    assert modern.missing_requirements == [
        "Course must include active instruction in communicating in a language other than English"
    ]
    # "Natural Sciences" got no verdict and the other batches returned nothing usable
    assert "Natural Sciences" in outcome.unassessed_requirements
    assert "Astrology" not in outcome.unassessed_requirements


def test_schema_mismatch_drops_the_batch(fake_service, responders, catalog, caplog):
    def broken(system, user):
        if "Batch 1 of 4" in system:
            return {"results": [{"requirement": "Quantitative Reasoning", "status": "MAYBE"}]}
        return responders["all_not_met"](system, user)

    service = fake_service(course=COURSE, batch=broken)
    with caplog.at_level(logging.WARNING):
        outcome = run(EvaluateAgent(service).evaluate_batches(SYLLABUS, catalog))

    assert outcome.unassessed_requirements == catalog.names()[:3]
    assert len(outcome.rejected) == 9
    assert "Dropped 1 of 4 batches" in caplog.text


def test_concurrent_batches_keep_catalog_order(fake_service, responders, catalog):
    delays = {"Batch 1 of 4": 0.05, "Batch 2 of 4": 0.0, "Batch 3 of 4": 0.02, "Batch 4 of 4": 0.0}

    class SlowService(fake_service):
        async def complete_json(self, system, user):
            for marker, delay in delays.items():
                if marker in system:
                    await asyncio.sleep(delay)
            return await super().complete_json(system, user)

    service = SlowService(course=COURSE, batch=responders["all_met"])
    agent = EvaluateAgent(service, max_concurrent_batches=4)
    outcome = run(agent.evaluate_batches(SYLLABUS, catalog))

    assert [a.name for a in outcome.approved] == catalog.names()


def test_invalid_agent_settings():
    with pytest.raises(ValueError):
        EvaluateAgent(service=None, batch_size=0)
    with pytest.raises(ValueError):
        EvaluateAgent(service=None, max_concurrent_batches=0)


def test_merge_batches_orders_by_index_and_collects_dropped():
    outcomes = [
        BatchOutcome(index=1, requirement_names=["B"], error=CompletionError("x")),
        BatchOutcome(index=0, requirement_names=["A"]),
    ]
    merged = merge_batches(outcomes)
    assert merged.dropped_requirements == ["B"]
    assert merged.approved == [] and merged.rejected == []


@pytest.mark.parametrize("content", ["", "   ", None, "not json", "[1, 2]", '{"a": 1'])
def test_parse_json_object_is_strict(content):
    with pytest.raises(CompletionError):
        parse_json_object(content)


def test_parse_json_object_accepts_objects():
    assert parse_json_object(json.dumps({"results": []})) == {"results": []}


def test_completion_service_requires_complete_json():
    class Incomplete(CompletionService):
        pass

    with pytest.raises(TypeError):
        Incomplete()
