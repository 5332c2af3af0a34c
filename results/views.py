from django.shortcuts import get_object_or_404
from rest_framework import viewsets
from rest_framework.decorators import api_view
from rest_framework.response import Response

from . import grading, services
from .models import Exam, Mark, SchoolClass, Student, Subject, SubjectCombination
from .serializers import (
    ClassSummarySerializer,
    ExamSerializer,
    MarkSerializer,
    SchoolClassSerializer,
    StudentSerializer,
    StudentSummarySerializer,
    SubjectCombinationSerializer,
    SubjectSerializer,
)


class SchoolClassViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = SchoolClass.objects.all()
    serializer_class = SchoolClassSerializer


class StudentViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Student.objects.select_related('school_class')
    serializer_class = StudentSerializer

    def get_queryset(self):
        queryset = Student.objects.select_related('school_class')
        class_id = self.request.query_params.get('class_id')
        if class_id:
            queryset = queryset.filter(school_class_id=class_id)
        return queryset


class SubjectViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Subject.objects.all()
    serializer_class = SubjectSerializer


class SubjectCombinationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = SubjectCombination.objects.prefetch_related('items__subject')
    serializer_class = SubjectCombinationSerializer


class ExamViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Exam.objects.all()
    serializer_class = ExamSerializer


class MarkViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Mark.objects.select_related('student__school_class', 'subject', 'exam')
    serializer_class = MarkSerializer

    def get_queryset(self):
        queryset = Mark.objects.select_related('student__school_class', 'subject', 'exam')
        exam_id = self.request.query_params.get('exam_id')
        student_id = self.request.query_params.get('student_id')
        subject_id = self.request.query_params.get('subject_id')

        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        if student_id:
            queryset = queryset.filter(student_id=student_id)
        if subject_id:
            queryset = queryset.filter(subject_id=subject_id)

        return queryset


@api_view(['GET'])
def grade(request):
    """
    Grade a single mark: /api/grade/?marks=68&scheme=O_LEVEL
    """
    scheme = request.query_params.get('scheme', grading.O_LEVEL)
    raw_marks = request.query_params.get('marks', '').strip()

    if grading.get_scheme(scheme) is None:
        return Response({'error': f'Unknown grading scheme: {scheme}'}, status=400)

    marks = None
    if raw_marks:
        try:
            marks = float(raw_marks)
        except ValueError:
            return Response({'error': 'marks must be a number between 0 and 100'}, status=400)

    letter = grading.grade_for(marks, scheme)
    if letter == grading.INVALID:
        return Response({'error': 'marks must be a number between 0 and 100'}, status=400)

    return Response({
        'marks': marks,
        'scheme': scheme.upper(),
        'grade': letter,
        'points': grading.points_for(letter, scheme),
        'remarks': grading.remarks_for(letter, scheme),
    })


@api_view(['POST'])
def submit_marks(request, exam_id):
    """
    Batch marks entry for one exam. Body is a list of
    {"student": id, "subject": id, "marks_obtained": number|null, "comment": str}
    """
    exam = get_object_or_404(Exam, id=exam_id)
    entries = request.data

    if not isinstance(entries, list) or not entries:
        return Response({'error': 'Expected a non-empty list of marks'}, status=400)

    saved, errors = services.submit_marks(exam, entries)

    return Response({
        'saved': len(saved),
        'results': MarkSerializer(saved, many=True).data,
        'errors': errors,
    }, status=200 if saved else 400)


def _ranked_student(student, summary):
    return {
        'student': StudentSerializer(student).data,
        **StudentSummarySerializer(summary).data,
    }


@api_view(['GET'])
def class_report(request, exam_id, class_id):
    exam = get_object_or_404(Exam, id=exam_id)
    school_class = get_object_or_404(SchoolClass, id=class_id)

    ranked, summary = services.class_summary(school_class, exam)

    return Response({
        'exam': ExamSerializer(exam).data,
        'class': SchoolClassSerializer(school_class).data,
        'scheme': services.scheme_for_class(school_class),
        'students': [_ranked_student(student, student_summary) for student, student_summary in ranked],
        'summary': ClassSummarySerializer(summary).data,
    })


@api_view(['GET'])
def form_report(request, exam_id, form):
    """
    All streams of a form ranked together: /api/exams/1/forms/5/report/?academic_year=2024
    """
    exam = get_object_or_404(Exam, id=exam_id)
    academic_year = request.query_params.get('academic_year')

    streams, ranked, summary = services.form_summary(form, exam, academic_year=academic_year)
    if not streams:
        return Response({'error': f'No classes found for Form {form}'}, status=404)

    return Response({
        'exam': ExamSerializer(exam).data,
        'form': form,
        'scheme': services.scheme_for_class(streams[0][0]),
        'classes': [
            {
                'class': SchoolClassSerializer(school_class).data,
                'summary': ClassSummarySerializer(class_summary).data,
            }
            for school_class, class_summary in streams
        ],
        'students': [_ranked_student(student, student_summary) for student, student_summary in ranked],
        'summary': ClassSummarySerializer(summary).data,
    })


@api_view(['GET'])
def student_report(request, exam_id, student_id):
    exam = get_object_or_404(Exam, id=exam_id)
    student = get_object_or_404(Student.objects.select_related('school_class'), id=student_id)

    summary = services.student_report(student, exam)

    return Response({
        'exam': ExamSerializer(exam).data,
        'class': SchoolClassSerializer(student.school_class).data,
        'class_size': student.school_class.students.count(),
        **_ranked_student(student, summary),
    })
