import sys
from pathlib import Path

import pytest

# Ensure the repository root (which contains the `classops` package) is importable in tests.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from classops.analytics.unifier import unify  # noqa: E402


@pytest.fixture
def fb_rows():
    return [
        {
            "date": "2025-01-10",
            "product_type": "HSC 26",
            "course": "Physics",
            "subject": "Vectors",
            "teacher": "Rina",
            "total_duration": "60",
            "highest_attendance": "1,200",
            "average_attendance": "800",
            "issues_type": "Audio",
        },
        {
            "date": "2025-01-12",
            "product_type": "SSC 26",
            "course": "Math",
            "subject": "Algebra",
            "teacher": "Karim",
            "total_duration": "45",
            "highest_attendance": "500",
            "average_attendance": "300",
            "issues_type": "",
        },
        {
            "date": "2025-02-01",
            "product_type": "HSC 26",
            "course": "Physics",
            "subject": "Optics",
            "teacher": "",
            "total_duration": "30",
            "highest_attendance": "-",
            "average_attendance": "100",
            "issues_type": "Video",
        },
    ]


@pytest.fixture
def app_rows():
    return [
        {
            "date": "2025-01-15",
            "product": "Admission",
            "subject": "Chemistry",
            "class_topic": "Bonds",
            "teacher": "Rina",
            "class_duration": "90",
            "total_attendance": "1,500",
            "average_class_rating": "4.5",
            "issues_type": "Audio",
        },
        {
            "date": "2025-02-20",
            "product": "Admission",
            "subject": "Chemistry",
            "class_topic": "Acids",
            "teacher": "Karim",
            "class_duration": "40",
            "total_attendance": "200",
            "average_class_rating": "0",
            "issues_type": "",
        },
    ]


@pytest.fixture
def records(fb_rows, app_rows):
    return unify(fb_rows, app_rows)
