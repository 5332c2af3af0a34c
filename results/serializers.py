from rest_framework import serializers

from . import grading
from .models import CombinationSubject, Exam, Mark, SchoolClass, Student, Subject, SubjectCombination


class RoundedFloatField(serializers.FloatField):
    def to_representation(self, value):
        return round(float(value), 2)


class SchoolClassSerializer(serializers.ModelSerializer):
    class Meta:
        model = SchoolClass
        fields = '__all__'


class StudentSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Student
        fields = '__all__'


class SubjectSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subject
        fields = '__all__'


class CombinationSubjectSerializer(serializers.ModelSerializer):
    subject_code = serializers.ReadOnlyField(source='subject.code')
    subject_name = serializers.ReadOnlyField(source='subject.name')

    class Meta:
        model = CombinationSubject
        fields = ['subject', 'subject_code', 'subject_name', 'is_principal']


class SubjectCombinationSerializer(serializers.ModelSerializer):
    items = CombinationSubjectSerializer(many=True, read_only=True)

    class Meta:
        model = SubjectCombination
        fields = ['id', 'code', 'name', 'education_level', 'items']


class ExamSerializer(serializers.ModelSerializer):
    class Meta:
        model = Exam
        fields = '__all__'


class MarkSerializer(serializers.ModelSerializer):
    grade = serializers.ReadOnlyField()
    points = serializers.ReadOnlyField()

    class Meta:
        model = Mark
        fields = '__all__'


class MarkEntrySerializer(serializers.Serializer):
    """One row of a batch marks submission."""

    student = serializers.PrimaryKeyRelatedField(
        queryset=Student.objects.select_related('school_class', 'subject_combination')
    )
    subject = serializers.PrimaryKeyRelatedField(queryset=Subject.objects.all())
    marks_obtained = serializers.FloatField(allow_null=True)
    comment = serializers.CharField(max_length=255, allow_blank=True, required=False, default='')

    def to_internal_value(self, data):
        # an empty cell in the marks grid means "absent"
        if isinstance(data, dict) and data.get('marks_obtained') == '':
            data = {**data, 'marks_obtained': None}
        return super().to_internal_value(data)

    def validate_marks_obtained(self, value):
        if value is not None and grading.grade_for(value, grading.O_LEVEL) == grading.INVALID:
            raise serializers.ValidationError("Marks must be a number between 0 and 100.")
        return value

    def validate(self, attrs):
        student, subject = attrs['student'], attrs['subject']
        level = student.school_class.education_level
        if subject.education_level != level:
            raise serializers.ValidationError({
                'subject': f"{subject.code} is not offered at {student.school_class.get_education_level_display()}."
            })

        combination = student.subject_combination
        if combination is None:
            if level == grading.A_LEVEL:
                raise serializers.ValidationError({
                    'student': f"{student.admission_number} has no subject combination."
                })
        elif student.combination_item(subject.pk) is None:
            raise serializers.ValidationError({
                'subject': f"{subject.code} is not part of the {combination.code} combination."
            })
        return attrs


class SubjectResultSerializer(serializers.Serializer):
    subject_id = serializers.ReadOnlyField()
    subject_name = serializers.CharField()
    marks_obtained = serializers.FloatField(allow_null=True)
    is_principal = serializers.BooleanField()
    grade = serializers.CharField()
    points = serializers.ReadOnlyField()
    remarks = serializers.SerializerMethodField()

    def get_remarks(self, obj):
        return grading.remarks_for(obj.grade, obj.scheme)


class StudentSummarySerializer(serializers.Serializer):
    scheme = serializers.CharField()
    status = serializers.CharField()
    total_marks = RoundedFloatField(allow_null=True)
    average_marks = RoundedFloatField(allow_null=True)
    total_points = serializers.ReadOnlyField()
    best_n_points = serializers.ReadOnlyField()
    division = serializers.CharField()
    rank = serializers.IntegerField(allow_null=True)
    results = SubjectResultSerializer(many=True)


class SubjectStatisticsSerializer(serializers.Serializer):
    subject_id = serializers.ReadOnlyField()
    subject_name = serializers.CharField()
    registered = serializers.IntegerField()
    graded = serializers.IntegerField()
    grade_distribution = serializers.DictField(child=serializers.IntegerField())
    passed = serializers.IntegerField()
    gpa = RoundedFloatField(allow_null=True)
    average_marks = RoundedFloatField(allow_null=True)


class ClassSummarySerializer(serializers.Serializer):
    total_students = serializers.IntegerField()
    division_distribution = serializers.DictField(child=serializers.IntegerField())
    incomplete = serializers.IntegerField()
    invalid = serializers.IntegerField()
    subjects = SubjectStatisticsSerializer(many=True)
    class_average = RoundedFloatField(allow_null=True)
    pass_rate = RoundedFloatField()
