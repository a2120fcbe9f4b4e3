import json

from textlens.services.prompts import RESULT_EXAMPLE, budget_for, build_prompt
from textlens.services.result_parser import parse_result
from textlens.services.types import AnalysisRequest, DomainVariant


def test_prompt_embeds_text_and_schema_example():
    text = "Ana will {not} forget the budget."
    prompt = build_prompt(AnalysisRequest(text=text))
    assert text in prompt
    assert json.dumps(RESULT_EXAMPLE, ensure_ascii=False, indent=2) in prompt
    assert "Do NOT limit the number of people or action items" in prompt


def test_schema_example_is_a_valid_result_with_nested_outline():
    result = parse_result(json.dumps(RESULT_EXAMPLE))
    assert result.outline.children[0].children, "example must show two outline levels"


def test_each_variant_has_its_own_lens_and_budget():
    prompts = {v: build_prompt(AnalysisRequest(text="x", domain_variant=v)) for v in DomainVariant}
    assert len(set(prompts.values())) == len(DomainVariant)
    assert budget_for(DomainVariant.GENERAL).temperature == 0.7
    assert budget_for(DomainVariant.GENERAL).max_tokens == 2000
    assert budget_for(DomainVariant.MEDICAL).temperature < budget_for(DomainVariant.GENERAL).temperature
