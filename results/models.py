# models.py
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from . import grading

EDUCATION_LEVELS = (
    (grading.O_LEVEL, "O-Level (CSEE)"),
    (grading.A_LEVEL, "A-Level (ACSEE)"),
)


class SchoolClass(models.Model):
    name = models.CharField(max_length=100)
    form = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(6)])
    education_level = models.CharField(max_length=10, choices=EDUCATION_LEVELS, default=grading.O_LEVEL)
    academic_year = models.CharField(max_length=9, blank=True)  # e.g. "2024/2025"

    class Meta:
        ordering = ["form", "name"]
        verbose_name_plural = "classes"
        unique_together = ("name", "academic_year")

    def __str__(self):
        return f"{self.name} ({self.get_education_level_display()})"


class Subject(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)
    education_level = models.CharField(max_length=10, choices=EDUCATION_LEVELS, default=grading.O_LEVEL)
    # used when the student has no subject combination
    is_principal = models.BooleanField(default=False)
    is_compulsory = models.BooleanField(default=False)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"


class SubjectCombination(models.Model):
    code = models.CharField(max_length=20, unique=True)  # "PCM", "HGL", "EGM"
    name = models.CharField(max_length=100)
    education_level = models.CharField(max_length=10, choices=EDUCATION_LEVELS, default=grading.A_LEVEL)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"


class CombinationSubject(models.Model):
    combination = models.ForeignKey(SubjectCombination, on_delete=models.CASCADE, related_name="items")
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="combination_items")
    is_principal = models.BooleanField(default=True)  # False = subsidiary

    class Meta:
        unique_together = ("combination", "subject")
        ordering = ["combination", "-is_principal", "subject"]

    def __str__(self):
        kind = "principal" if self.is_principal else "subsidiary"
        return f"{self.combination.code}: {self.subject.code} ({kind})"


class Student(models.Model):
    admission_number = models.CharField(max_length=30, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name="students")
    subject_combination = models.ForeignKey(
        SubjectCombination,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="students",
    )

    class Meta:
        ordering = ["admission_number"]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def combination_item(self, subject_id):
        """The combination entry for ``subject_id``, or None when it is not part of it."""
        if self.subject_combination is None:
            return None
        for item in self.subject_combination.items.all():
            if item.subject_id == subject_id:
                return item
        return None

    def __str__(self):
        return f"{self.admission_number} - {self.full_name}"


class Exam(models.Model):
    name = models.CharField(max_length=100)  # "Mid Term", "Terminal", "Annual"
    term = models.PositiveSmallIntegerField(default=1)
    year = models.IntegerField()

    class Meta:
        ordering = ["-year", "term", "name"]

    def __str__(self):
        return f"{self.name} (Term {self.term}, {self.year})"


class Mark(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="marks")
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name="marks")
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name="marks")

    # null = absent / not yet entered; grade and points are derived
    marks_obtained = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    comment = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("student", "subject", "exam")
        ordering = ["exam", "student", "subject"]

    @property
    def scheme(self):
        return self.student.school_class.education_level

    @property
    def grade(self):
        return grading.grade_for(self.marks_obtained, self.scheme)

    @property
    def points(self):
        return grading.points_for(self.grade, self.scheme)

    @property
    def is_principal(self):
        # the combination decides; subjects outside it never count as principal
        if self.student.subject_combination is None:
            return self.subject.is_principal
        item = self.student.combination_item(self.subject_id)
        return item is not None and item.is_principal

    def as_subject_result(self):
        return grading.SubjectResult(
            subject_id=self.subject_id,
            subject_name=self.subject.name,
            marks_obtained=self.marks_obtained,
            is_principal=self.is_principal,
            is_compulsory=self.subject.is_compulsory,
            scheme=self.scheme,
        )

    def __str__(self):
        return f"{self.student} / {self.subject.code} ({self.exam}): {self.marks_obtained}"
