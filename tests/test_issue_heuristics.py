from core.gate.application.issue_heuristics import (
    analyze_initial_complexity,
    category_labels,
    derive_issue_title,
    detect_thought_category,
    map_category_to_issue_type,
)


def test_category_prefers_known_tags():
    assert detect_thought_category("fix the bug", ["research-topic"]) == "research-topic"
    assert detect_thought_category("fix the bug", ["unknown"]) == "bug-insight"


def test_category_keyword_order_and_default():
    assert detect_thought_category("New microservice architecture") == "architecture"
    assert detect_thought_category("make it faster") == "optimization"
    assert detect_thought_category("hello") == "feature-idea"


def test_title_is_first_sentence_capitalised():
    assert derive_issue_title("support exports. Later maybe pdf.") == "Support exports"
    assert derive_issue_title("add search\n\nAdditional requirements: fast") == "Add search"


def test_title_is_truncated():
    title = derive_issue_title("a" * 80)
    assert len(title) == 60
    assert title.endswith("...")


def test_category_to_type_mapping():
    assert map_category_to_issue_type("bug-insight") == "Bug Fix"
    assert map_category_to_issue_type("research-topic") == "Documentation"
    assert map_category_to_issue_type("whatever") == "Improvement"


def test_complexity_levels():
    assert analyze_initial_complexity("database migration across services") == "high"
    assert analyze_initial_complexity("new api endpoint") == "medium"
    assert analyze_initial_complexity("typo") == "low"


def test_category_labels():
    assert category_labels("Bug-Insight", "High") == ["bug-insight", "high-priority"]
    assert category_labels("optimization") == ["optimization", "medium-priority"]
