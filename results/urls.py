from django.urls import path, include
from rest_framework.routers import DefaultRouter
from results.views import (
    SchoolClassViewSet, StudentViewSet, SubjectViewSet, SubjectCombinationViewSet, ExamViewSet, MarkViewSet,
    grade, submit_marks, class_report, form_report, student_report
)

router = DefaultRouter()
router.register(r'classes', SchoolClassViewSet)
router.register(r'students', StudentViewSet)
router.register(r'subjects', SubjectViewSet)
router.register(r'combinations', SubjectCombinationViewSet)
router.register(r'exams', ExamViewSet)
router.register(r'marks', MarkViewSet)

urlpatterns = [
    path('api/', include(router.urls)),
    path('api/grade/', grade, name='api_grade'),
    path('api/exams/<int:exam_id>/marks/', submit_marks, name='api_submit_marks'),
    path('api/exams/<int:exam_id>/classes/<int:class_id>/report/', class_report, name='api_class_report'),
    path('api/exams/<int:exam_id>/forms/<int:form>/report/', form_report, name='api_form_report'),
    path('api/exams/<int:exam_id>/students/<int:student_id>/report/', student_report, name='api_student_report'),
]
