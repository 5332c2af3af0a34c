# services.py
import logging
from collections import defaultdict

from django.db import transaction

from . import grading
from .models import Mark, SchoolClass
from .serializers import MarkEntrySerializer

logger = logging.getLogger(__name__)


def scheme_for_class(school_class) -> str:
    return school_class.education_level


def _marks_queryset():
    return (
        Mark.objects
        .select_related('subject', 'student__school_class', 'student__subject_combination')
        .prefetch_related('student__subject_combination__items')
        .order_by('subject__code')
    )


def _by_rank(pair):
    student, summary = pair
    return (summary.rank is None, summary.rank or 0, student.admission_number)


def subject_results(student, exam):
    """Every subject the student has a mark row for in ``exam``, by subject code."""
    marks = _marks_queryset().filter(student=student, exam=exam)
    return [mark.as_subject_result() for mark in marks]


def class_results(school_class, exam):
    """
    Summaries for every student in the class, ranked against each other.
    Returns (student, summary) pairs, best rank first; unranked students last.
    """
    scheme = scheme_for_class(school_class)
    students = list(school_class.students.all())

    by_student = defaultdict(list)
    for mark in _marks_queryset().filter(exam=exam, student__school_class=school_class):
        by_student[mark.student_id].append(mark.as_subject_result())

    summaries = []
    for student in students:
        summary = grading.summarize_student(by_student[student.pk], scheme, student_id=student.pk)
        if summary.status == grading.INVALID:
            logger.warning("Student %s has invalid marks in exam %s", student.admission_number, exam.pk)
        summaries.append(summary)

    return sorted(zip(students, grading.assign_ranks(summaries)), key=_by_rank)


def class_summary(school_class, exam):
    ranked = class_results(school_class, exam)
    summary = grading.aggregate_class_summary(summary for _, summary in ranked)
    return ranked, summary


def form_summary(form, exam, academic_year=None):
    """
    Every class (stream) of a form for one exam.
    Returns (per-class summaries, students ranked across the whole form,
    form summary). Class ranks are replaced by form positions.
    """
    classes = SchoolClass.objects.filter(form=form)
    if academic_year:
        classes = classes.filter(academic_year=academic_year)

    streams = []
    pairs = []
    for school_class in classes:
        ranked, summary = class_summary(school_class, exam)
        streams.append((school_class, summary))
        pairs.extend(ranked)

    levels = {school_class.education_level for school_class, _ in streams}
    if len(levels) > 1:
        logger.warning("Form %s mixes education levels %s for exam %s", form, sorted(levels), exam.pk)

    students = [student for student, _ in pairs]
    reranked = grading.assign_ranks(summary for _, summary in pairs)
    ranked = sorted(zip(students, reranked), key=_by_rank)
    return streams, ranked, grading.aggregate_class_summary(summary for _, summary in ranked)


def student_report(student, exam):
    """The student's summary, ranked within their whole class."""
    for candidate, summary in class_results(student.school_class, exam):
        if candidate.pk == student.pk:
            return summary
    return None


def submit_marks(exam, entries):
    """
    Upsert a batch of marks for ``exam``. Each row is validated and saved
    on its own; rejected rows are returned as errors and do not stop the
    rest of the batch.
    """
    saved = []
    errors = []

    for index, entry in enumerate(entries):
        serializer = MarkEntrySerializer(data=entry)
        if not serializer.is_valid():
            logger.warning("Rejected mark row %d for exam %s: %s", index, exam.pk, serializer.errors)
            errors.append({'index': index, 'errors': serializer.errors})
            continue

        data = serializer.validated_data
        with transaction.atomic():
            mark, created = Mark.objects.update_or_create(
                student=data['student'],
                subject=data['subject'],
                exam=exam,
                defaults={
                    'marks_obtained': data['marks_obtained'],
                    'comment': data.get('comment', ''),
                },
            )
        logger.info(
            "%s mark %s/%s exam %s: %s (%s)",
            "Created" if created else "Updated",
            data['student'].admission_number,
            data['subject'].code,
            exam.pk,
            mark.marks_obtained,
            mark.grade,
        )
        saved.append(mark)

    return saved, errors
