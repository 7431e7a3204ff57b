from rest_framework import serializers
from uxone.core.serializers import UserSummarySerializer
from .models import Demand, DemandLine


class DemandLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = DemandLine
        fields = ['id', 'item_description', 'quantity', 'unit_of_measure', 'estimated_cost',
                  'specifications', 'supplier_preference', 'status', 'created_at']
        read_only_fields = ['status', 'created_at']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate_unit_of_measure(self, value):
        return (value or 'EA').strip().upper()


class DemandSerializer(serializers.ModelSerializer):
    requester = UserSummarySerializer(read_only=True)
    lines = DemandLineSerializer(many=True)
    total_estimated_cost = serializers.SerializerMethodField()

    class Meta:
        model = Demand
        fields = ['id', 'requester', 'bu', 'department', 'user_department', 'account', 'approval_route',
                  'expense_account', 'expense_description', 'expense_gl_class', 'expense_stock_type',
                  'expense_order_type', 'justification', 'priority_level', 'expected_delivery_date',
                  'status', 'department_specific', 'attachments', 'lines', 'total_estimated_cost',
                  'submitted_at', 'approved_at', 'created_at', 'updated_at']
        read_only_fields = ['id', 'user_department', 'status', 'submitted_at', 'approved_at',
                            'created_at', 'updated_at']

    def get_total_estimated_cost(self, obj):
        return float(obj.total_estimated_cost)

    def validate_department(self, value):
        return value.strip().upper()

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError("At least one demand line is required")
        return value

    def create(self, validated_data):
        lines = validated_data.pop('lines')
        demand = Demand.objects.create(**validated_data)
        DemandLine.objects.bulk_create([DemandLine(demand=demand, **line) for line in lines])
        return demand
