"""NECTA grade engine.

Pure functions that turn raw marks into grades, points and divisions for
the two national schemes (O-Level / CSEE and A-Level / ACSEE) and fold a
class worth of student summaries into a class summary.

Nothing here raises for bad data. Out-of-domain input comes back as
``INVALID`` and a best-N selection without enough subjects comes back as
``INCOMPLETE``, so a caller walking a whole class can keep going after a
bad record and branch on the sentinel afterwards.
"""

import logging
import math
import numbers
from bisect import bisect_left
from collections import defaultdict
from dataclasses import dataclass, field, replace
from decimal import Decimal
from operator import attrgetter
from types import MappingProxyType
from typing import Any, NamedTuple, Optional

logger = logging.getLogger(__name__)

O_LEVEL = "O_LEVEL"
A_LEVEL = "A_LEVEL"

OK = "OK"
UNGRADED = "-"
INVALID = "INVALID"
INCOMPLETE = "INCOMPLETE"

DIVISIONS = ("I", "II", "III", "IV", "V", "0")
PASSING_DIVISIONS = ("I", "II", "III")
DIVISION_ORDER = {"I": 0, "II": 1, "III": 2, "IV": 3, "V": 4, "0": 5, INCOMPLETE: 6}


class GradingScheme(NamedTuple):
    name: str
    # (minimum mark, grade, points), best band first
    bands: tuple
    best_n: int
    principal_only: bool
    division_floor: int
    # (highest points, division), best division first
    division_bands: tuple
    remarks: MappingProxyType

    @property
    def alphabet(self):
        return tuple(grade for _, grade, _ in self.bands)

    @property
    def points(self):
        return {grade: points for _, grade, points in self.bands}


SCHEMES = {
    O_LEVEL: GradingScheme(
        name=O_LEVEL,
        bands=(
            (75, "A", 1),
            (65, "B", 2),
            (45, "C", 3),
            (30, "D", 4),
            (0, "F", 5),
        ),
        best_n=7,
        principal_only=False,
        division_floor=7,
        division_bands=((17, "I"), (21, "II"), (25, "III"), (33, "IV")),
        remarks=MappingProxyType({
            "A": "Excellent",
            "B": "Very Good",
            "C": "Good",
            "D": "Satisfactory",
            "F": "Fail",
        }),
    ),
    # A-Level points run the other way round (A is worth the most).
    A_LEVEL: GradingScheme(
        name=A_LEVEL,
        bands=(
            (80, "A", 5),
            (70, "B", 4),
            (60, "C", 3),
            (50, "D", 2),
            (40, "E", 1),
            (35, "S", 0.5),
            (0, "F", 0),
        ),
        best_n=3,
        principal_only=True,
        division_floor=3,
        division_bands=((9, "I"), (12, "II"), (17, "III"), (19, "IV"), (21, "V")),
        remarks=MappingProxyType({
            "A": "Excellent",
            "B": "Very Good",
            "C": "Good",
            "D": "Satisfactory",
            "E": "Pass",
            "S": "Subsidiary Pass",
            "F": "Fail",
        }),
    ),
}


def get_scheme(scheme) -> Optional[GradingScheme]:
    if not isinstance(scheme, str):
        return None
    return SCHEMES.get(scheme.upper())


def _is_absent(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() in ("", UNGRADED))


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return None
    value = float(value)
    if math.isnan(value):
        return None
    return value


def grade_for(marks, scheme) -> str:
    """Letter grade for ``marks`` under ``scheme``.

    Absent marks (``None``, an empty string or ``"-"``) give ``UNGRADED``. Marks
    outside 0-100, non-numeric marks and unknown schemes give ``INVALID``.
    Band lower bounds are inclusive.
    """
    table = get_scheme(scheme)
    if table is None:
        logger.warning("Unknown grading scheme: %r", scheme)
        return INVALID
    if _is_absent(marks):
        return UNGRADED

    value = _as_number(marks)
    if value is None or not 0 <= value <= 100:
        logger.warning("Invalid marks for %s: %r", table.name, marks)
        return INVALID

    return next(grade for minimum, grade, _ in table.bands if value >= minimum)


def _normalize_grade(grade) -> Optional[str]:
    if not isinstance(grade, str):
        return None
    return grade.strip().upper()


def points_for(grade, scheme):
    """Points for ``grade``: 1 (A) to 5 (F) at O-Level, 5 (A) to 0 (F) at A-Level."""
    table = get_scheme(scheme)
    if table is None:
        logger.warning("Unknown grading scheme: %r", scheme)
        return INVALID
    if _is_absent(grade):
        return UNGRADED
    letter = _normalize_grade(grade)
    if letter not in table.points:
        logger.warning("Unrecognised %s grade: %r", table.name, grade)
        return INVALID
    return table.points[letter]


def remarks_for(grade, scheme) -> str:
    table = get_scheme(scheme)
    if table is None:
        return UNGRADED
    return table.remarks.get(_normalize_grade(grade), UNGRADED)


def is_pass(grade, scheme, principal=True) -> bool:
    """Whether ``grade`` is a subject pass.

    O-Level passes are A-D. A-Level principal passes are A-E, and a
    subsidiary subject also passes with S.
    """
    table = get_scheme(scheme)
    grade = _normalize_grade(grade)
    if table is None or grade not in table.points:
        return False
    if table.name == O_LEVEL:
        return grade != "F"
    passing = ("A", "B", "C", "D", "E") if principal else ("A", "B", "C", "D", "E", "S")
    return grade in passing


@dataclass(frozen=True)
class SubjectResult:
    subject_id: Any
    subject_name: str
    marks_obtained: Optional[float]
    is_principal: bool = False
    is_compulsory: bool = False
    scheme: str = O_LEVEL

    # grade and points always follow the marks, they are never stored
    @property
    def grade(self) -> str:
        return grade_for(self.marks_obtained, self.scheme)

    @property
    def points(self):
        return points_for(self.grade, self.scheme)

    @property
    def gradable(self) -> bool:
        return self.grade not in (UNGRADED, INVALID)


@dataclass(frozen=True)
class Selection:
    status: str
    total: Optional[float]
    chosen: tuple = ()

    @property
    def complete(self) -> bool:
        return self.status == OK


def _select_best(items, n, key) -> Selection:
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        return Selection(INVALID, None)
    # sorted() is stable: on equal points the earlier item wins
    ranked = sorted(items, key=key)
    if len(ranked) < n:
        return Selection(INCOMPLETE, None, tuple(ranked))
    chosen = tuple(ranked[:n])
    return Selection(OK, sum(key(item) for item in chosen), chosen)


def best_n_points(results, n) -> Selection:
    """Pick the ``n`` gradable results with the lowest points and sum them."""
    gradable = [result for result in results if result.gradable]
    return _select_best(gradable, n, attrgetter("points"))


def best_n_principal_points(results, n) -> Selection:
    """Same as :func:`best_n_points`, restricted to principal subjects."""
    principals = [result for result in results if result.is_principal and result.gradable]
    return _select_best(principals, n, attrgetter("points"))


def classify_division(points, scheme=A_LEVEL) -> str:
    if points is None or points == INCOMPLETE:
        return INCOMPLETE
    table = get_scheme(scheme)
    value = _as_number(points)
    if table is None or value is None:
        return INVALID

    if value < table.division_floor:
        return "0"
    for highest, division in table.division_bands:
        if value <= highest:
            return division
    return "0"


def aggregate_from_grades(grades, scheme):
    """Best-N aggregate and division straight from grade letters.

    Grades outside the scheme's alphabet (absent, withheld) are skipped.
    Returns a ``(Selection, division)`` pair.
    """
    table = get_scheme(scheme)
    if table is None:
        return Selection(INVALID, None), INVALID

    points = [table.points[grade] for grade in grades if grade in table.points]
    selection = _select_best(points, table.best_n, lambda value: value)
    if not selection.complete:
        return selection, classify_division(INCOMPLETE, table.name)
    return selection, classify_division(selection.total, table.name)


@dataclass(frozen=True)
class StudentSummary:
    student_id: Any
    scheme: str
    results: tuple
    status: str
    total_marks: Optional[float] = None
    average_marks: Optional[float] = None
    total_points: Optional[float] = None
    best_n_points: Optional[float] = None
    division: str = INCOMPLETE
    rank: Optional[int] = None


def summarize_student(results, scheme, student_id=None) -> StudentSummary:
    """Fold one student's subject results into a :class:`StudentSummary`.

    The aggregate is the best three principal subjects at A-Level and the
    best seven subjects at O-Level. The rank is left empty, see
    :func:`assign_ranks`.
    """
    table = get_scheme(scheme)
    if table is None:
        return StudentSummary(student_id, scheme, tuple(results), INVALID, division=INVALID)

    results = tuple(
        result if result.scheme == table.name else replace(result, scheme=table.name)
        for result in results
    )
    if any(result.grade == INVALID for result in results):
        return StudentSummary(student_id, table.name, results, INVALID, division=INVALID)

    graded = [result for result in results if result.gradable]
    total_marks = math.fsum(result.marks_obtained for result in graded)
    average_marks = total_marks / len(graded) if graded else None
    total_points = sum(result.points for result in graded)

    if table.principal_only:
        selection = best_n_principal_points(results, table.best_n)
    else:
        selection = best_n_points(results, table.best_n)

    return StudentSummary(
        student_id=student_id,
        scheme=table.name,
        results=results,
        status=OK if selection.complete else INCOMPLETE,
        total_marks=total_marks,
        average_marks=average_marks,
        total_points=total_points,
        best_n_points=selection.total,
        division=classify_division(selection.total, table.name),
    )


def _rank_key(summary):
    points = summary.best_n_points if summary.best_n_points is not None else math.inf
    average = -summary.average_marks if summary.average_marks is not None else math.inf
    return (DIVISION_ORDER.get(summary.division, len(DIVISION_ORDER)), points, average)


def assign_ranks(summaries):
    """Rank a whole class+exam cohort.

    Ordered by division, then best-N points, then average marks (highest
    first). Equal keys share a rank and the next rank is skipped (1, 1, 3).
    Invalid summaries are not ranked. The input order is preserved.
    """
    summaries = list(summaries)
    keys = {index: _rank_key(summary) for index, summary in enumerate(summaries) if summary.status != INVALID}
    ordered = sorted(keys.values())

    ranked = []
    for index, summary in enumerate(summaries):
        rank = bisect_left(ordered, keys[index]) + 1 if index in keys else None
        ranked.append(replace(summary, rank=rank))
    return ranked


@dataclass(frozen=True)
class SubjectStatistics:
    subject_id: Any
    subject_name: str
    registered: int
    graded: int
    grade_distribution: dict
    passed: int
    gpa: Optional[float]
    average_marks: Optional[float]


@dataclass(frozen=True)
class ClassSummary:
    total_students: int
    division_distribution: dict
    incomplete: int
    invalid: int
    subjects: tuple = field(default_factory=tuple)
    class_average: Optional[float] = None
    pass_rate: float = 0.0


def _subject_order(subject_id):
    if isinstance(subject_id, numbers.Real) and not isinstance(subject_id, bool):
        return (0, subject_id, "")
    return (1, 0, str(subject_id))


def _subject_statistics(subject_id, results) -> SubjectStatistics:
    alphabet = []
    for name in sorted({result.scheme for result in results}):
        table = get_scheme(name)
        if table is not None:
            alphabet.extend(grade for grade in table.alphabet if grade not in alphabet)

    graded = [result for result in results if result.gradable]
    distribution = dict.fromkeys(alphabet, 0)
    for result in graded:
        distribution[result.grade] += 1

    return SubjectStatistics(
        subject_id=subject_id,
        subject_name=min(result.subject_name for result in results),
        registered=len(results),
        graded=len(graded),
        grade_distribution=distribution,
        passed=sum(1 for result in graded if result.grade != "F"),
        gpa=math.fsum(result.points for result in graded) / len(graded) if graded else None,
        average_marks=math.fsum(result.marks_obtained for result in graded) / len(graded) if graded else None,
    )


def aggregate_class_summary(summaries) -> ClassSummary:
    """Division histogram, per-subject statistics, class average and pass rate.

    The result does not depend on the order of ``summaries``: totals go
    through ``math.fsum`` and subjects come out sorted by id.
    """
    summaries = list(summaries)

    distribution = dict.fromkeys(DIVISIONS, 0)
    incomplete = invalid = 0
    for summary in summaries:
        if summary.division in distribution:
            distribution[summary.division] += 1
        elif summary.status == INVALID:
            invalid += 1
        else:
            incomplete += 1

    by_subject = defaultdict(list)
    for summary in summaries:
        for result in summary.results:
            by_subject[result.subject_id].append(result)

    averages = [summary.average_marks for summary in summaries if summary.average_marks is not None]
    passed = sum(distribution[division] for division in PASSING_DIVISIONS)

    return ClassSummary(
        total_students=len(summaries),
        division_distribution=distribution,
        incomplete=incomplete,
        invalid=invalid,
        subjects=tuple(
            _subject_statistics(subject_id, by_subject[subject_id])
            for subject_id in sorted(by_subject, key=_subject_order)
        ),
        class_average=math.fsum(averages) / len(averages) if averages else None,
        pass_rate=passed / len(summaries) if summaries else 0.0,
    )
