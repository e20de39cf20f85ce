import pytest

from govcord.governance.cohort import candidate_code, cohort_sort_key, normalize_cohort
from govcord.governance.errors import MalformedCohortError


@pytest.mark.parametrize(
    "label, expected",
    [
        ("7", "7"),
        ("07", "7"),
        (" 12 ", "12"),
        ("Class 7", "7"),
        ("cohort 3", "3"),
        ("No. 5", "5"),
        ("#9", "9"),
        ("7班", "7"),
        ("第7班", "7"),
        ("七班", "7"),
        ("十一班", "11"),
        ("二十", "20"),
        ("九十九", "99"),
        ("Class Seven", "7"),
        ("eleven", "11"),
        ("twenty-one", "21"),
    ],
)
def test_normalize_cohort_accepts_common_forms(label, expected):
    assert normalize_cohort(label) == expected


@pytest.mark.parametrize("label", [None, "", "班", "abc", "0", "零", "7 and 8", "Class 7b", "十十"])
def test_normalize_cohort_rejects_unreadable_labels(label):
    with pytest.raises(MalformedCohortError):
        normalize_cohort(label)


def test_candidate_code_pads_sequence():
    assert candidate_code("7", 1) == "701"
    assert candidate_code("12", 3) == "1203"


def test_cohort_sort_key_orders_numerically():
    assert sorted(["10", "2", "7"], key=cohort_sort_key) == ["2", "7", "10"]
