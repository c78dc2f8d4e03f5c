"""Tests for dependency inference between tool invocations."""

import pytest

from toolplan.catalog import ToolCatalog
from toolplan.planning import DependencyAnalyzer, Task, ToolInvocation, task_id_for


def analyze(analyzer, calls, candidate):
    """Run the analyzer for ``candidate`` placed after ``calls``."""
    tasks = [Task(id=task_id_for(i), tool_name=c.tool_name) for i, c in enumerate(calls)]
    return analyzer.analyze(candidate, calls, tasks)


@pytest.fixture
def analyzer():
    return DependencyAnalyzer()


@pytest.fixture
def preceding():
    return [
        ToolInvocation("sf_create_lead", {"LastName": "Doe"}),
        ToolInvocation("web_search", {"query": "Acme news"}),
    ]


class TestTextualHeuristic:
    def test_no_markers_no_dependencies(self, analyzer, preceding):
        call = ToolInvocation("research_company", {"name": "Acme"})
        assert analyze(analyzer, preceding, call) == set()

    def test_first_call_is_always_a_root(self, analyzer):
        call = ToolInvocation("sf_create_task", {"WhoId": "$task_0.id"})
        assert analyze(analyzer, [], call) == set()

    def test_explicit_placeholder_pins_named_task(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"WhoId": "$task_0.leadId"})
        assert analyze(analyzer, preceding, call) == {"task_0"}

    def test_multiple_placeholders(self, analyzer, preceding):
        call = ToolInvocation(
            "sf_create_task", {"WhoId": "$task_0.id", "Description": "$task_1.summary"}
        )
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_bare_dollar_depends_on_everything(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"Subject": "Budget is $500"})
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_result_word_depends_on_everything(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"Subject": "Use the Result of the search"})
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_placeholder_plus_loose_marker(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"WhoId": "$task_0.id", "Note": "see result"})
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_placeholder_to_unknown_task(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"WhoId": "$task_7.id"})
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_placeholder_task_id_is_case_sensitive(self, analyzer, preceding):
        # $TASK_0 is never substituted, so it cannot pin a single edge
        call = ToolInvocation("sf_create_task", {"WhoId": "$TASK_0.id"})
        assert analyze(analyzer, preceding, call) == {"task_0", "task_1"}

    def test_placeholder_field_keeps_its_case(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", {"WhoId": "$task_1.LeadId"})
        assert analyze(analyzer, preceding, call) == {"task_1"}

    def test_string_arguments(self, analyzer, preceding):
        call = ToolInvocation("sf_create_task", "$task_1.title")
        assert analyze(analyzer, preceding, call) == {"task_1"}

    def test_custom_markers(self, preceding):
        analyzer = DependencyAnalyzer(reference_markers=["@ref"])
        plain = ToolInvocation("sf_create_task", {"Subject": "$500 result"})
        marked = ToolInvocation("sf_create_task", {"Subject": "@REF previous"})
        assert analyze(analyzer, preceding, plain) == set()
        assert analyze(analyzer, preceding, marked) == {"task_0", "task_1"}


class TestTypeHeuristic:
    def test_record_id_consumer_after_records_producer(self, analyzer):
        calls = [
            ToolInvocation("sf_search", {"term": "Acme"}),
            ToolInvocation("research_company", {"name": "Acme"}),
        ]
        call = ToolInvocation("sf_get_record", {"id": "001"})
        assert analyze(analyzer, calls, call) == {"task_0"}

    def test_update_after_create(self, analyzer):
        calls = [ToolInvocation("sf_create_lead", {"LastName": "Doe"})]
        call = ToolInvocation("sf_update_record", {"Status": "Working"})
        assert analyze(analyzer, calls, call) == {"task_0"}

    def test_unknown_tools_only_use_textual_rule(self, analyzer):
        calls = [ToolInvocation("mystery", {})]
        assert analyze(analyzer, calls, ToolInvocation("other_mystery", {})) == set()

    def test_custom_catalog(self):
        catalog = ToolCatalog.from_dict(
            {
                "list_invoices": {"output_type": "invoice_id"},
                "fetch_invoice": {"output_type": "invoice", "input_types": ["invoice_id"]},
            }
        )
        analyzer = DependencyAnalyzer(catalog)
        calls = [ToolInvocation("list_invoices", {})]
        assert analyze(analyzer, calls, ToolInvocation("fetch_invoice", {})) == {"task_0"}

    def test_both_heuristics_union(self, analyzer):
        calls = [
            ToolInvocation("sf_query", {"soql": "SELECT Id FROM Lead"}),
            ToolInvocation("web_search", {"query": "Acme"}),
        ]
        call = ToolInvocation("sf_get_record", {"note": "$task_1.url"})
        assert analyze(analyzer, calls, call) == {"task_0", "task_1"}
