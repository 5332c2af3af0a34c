"""Shared fixtures: one O-Level class, one A-Level class and a terminal exam."""

import pytest

from results.grading import A_LEVEL, O_LEVEL
from results.models import CombinationSubject, Exam, Mark, SchoolClass, Student, Subject, SubjectCombination

O_LEVEL_SUBJECTS = [
    ("BIO", "Biology"),
    ("BMATH", "Basic Mathematics"),
    ("CIV", "Civics"),
    ("ENGL", "English Language"),
    ("GEO", "Geography"),
    ("HIST", "History"),
    ("KISW", "Kiswahili"),
]

# (code, name, principal)
A_LEVEL_SUBJECTS = [
    ("ADVMATH", "Advanced Mathematics", True),
    ("CHEM", "Chemistry", True),
    ("GS", "General Studies", False),
    ("KISWA", "Kiswahili", True),
    ("PHY", "Physics", True),
]


@pytest.fixture
def exam(db):
    return Exam.objects.create(name="Terminal", term=1, year=2024)


@pytest.fixture
def o_level_class(db):
    return SchoolClass.objects.create(name="Form 2A", form=2, education_level=O_LEVEL, academic_year="2024")


@pytest.fixture
def a_level_class(db):
    return SchoolClass.objects.create(name="Form 5 PCM", form=5, education_level=A_LEVEL, academic_year="2024")


@pytest.fixture
def o_level_subjects(db):
    return [
        Subject.objects.create(code=code, name=name, education_level=O_LEVEL, is_compulsory=True)
        for code, name in O_LEVEL_SUBJECTS
    ]


@pytest.fixture
def a_level_subjects(db):
    return [
        Subject.objects.create(code=code, name=name, education_level=A_LEVEL, is_principal=principal)
        for code, name, principal in A_LEVEL_SUBJECTS
    ]


@pytest.fixture
def make_student():
    def _make(school_class, admission_number, first_name="Asha", last_name="Mussa", combination=None):
        return Student.objects.create(
            admission_number=admission_number,
            first_name=first_name,
            last_name=last_name,
            school_class=school_class,
            subject_combination=combination,
        )

    return _make


@pytest.fixture
def enter_marks():
    def _enter(student, exam, subjects, marks):
        return [
            Mark.objects.create(student=student, subject=subject, exam=exam, marks_obtained=value)
            for subject, value in zip(subjects, marks)
        ]

    return _enter


@pytest.fixture
def make_combination(db):
    def _make(code, principals, subsidiaries=(), name=None):
        combination = SubjectCombination.objects.create(code=code, name=name or code, education_level=A_LEVEL)
        for subject in principals:
            CombinationSubject.objects.create(combination=combination, subject=subject, is_principal=True)
        for subject in subsidiaries:
            CombinationSubject.objects.create(combination=combination, subject=subject, is_principal=False)
        return combination

    return _make


@pytest.fixture
def pcm(a_level_subjects, make_combination):
    """Physics, Chemistry and Advanced Mathematics with General Studies."""
    subjects = {subject.code: subject for subject in a_level_subjects}
    return make_combination(
        "PCM",
        [subjects["PHY"], subjects["CHEM"], subjects["ADVMATH"]],
        [subjects["GS"]],
        name="Physics, Chemistry, Advanced Mathematics",
    )


@pytest.fixture
def history(db):
    return Subject.objects.create(code="HIST-A", name="History", education_level=A_LEVEL, is_principal=True)
