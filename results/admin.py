from django.contrib import admin
from .models import SchoolClass, Student, Subject, SubjectCombination, CombinationSubject, Exam, Mark


@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ("name", "form", "education_level", "academic_year")
    search_fields = ("name", "academic_year")
    list_filter = ("education_level", "form")


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("admission_number", "first_name", "last_name", "school_class", "subject_combination")
    search_fields = ("admission_number", "first_name", "last_name")
    list_filter = ("school_class__education_level", "school_class")


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "education_level", "is_principal", "is_compulsory")
    search_fields = ("code", "name")
    list_filter = ("education_level", "is_principal", "is_compulsory")


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ("name", "term", "year")
    list_filter = ("year", "term")


@admin.register(Mark)
class MarkAdmin(admin.ModelAdmin):
    list_display = ("student", "subject", "exam", "marks_obtained", "grade", "points")
    search_fields = ("student__admission_number", "student__first_name", "subject__code")
    list_filter = ("exam", "subject", "student__school_class")
    list_select_related = ("student__school_class", "subject", "exam")


class CombinationSubjectInline(admin.TabularInline):
    model = CombinationSubject
    extra = 3


@admin.register(SubjectCombination)
class SubjectCombinationAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "education_level")
    search_fields = ("code", "name")
    inlines = [CombinationSubjectInline]
