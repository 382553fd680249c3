from jira_insights.core.config import normalize_priority_name


def test_priority_mapping():
    assert normalize_priority_name("Critical") == "Critical"
    assert normalize_priority_name("  MAJOR ") == "Major"
    assert normalize_priority_name("Major (migrated)") == "Major"
    assert normalize_priority_name("1") == "Critical"
    assert normalize_priority_name("High") == "High"
    assert normalize_priority_name(None) == "Undefined"
    assert normalize_priority_name("") == "Undefined"
