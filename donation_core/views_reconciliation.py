# donation_core/views_reconciliation.py
from __future__ import annotations

from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import IsWorkflowAdmin
from .workflows.reconciliation import sweep


class SweepRequestSerializer(serializers.Serializer):
    dry_run = serializers.BooleanField(required=False, default=False)


class ReconciliationSweepView(APIView):
    """
    POST /donations/reconciliation/<subject_ref>/sweep/

    Body (optional):
        { "dry_run": true }

    Classifies the subject's legacy appointment documents and, unless
    dry_run, migrates misplaced ones into canonical appointments.
    Orphans are reported, never touched.
    """
    permission_classes = [IsWorkflowAdmin]

    def post(self, request, subject_ref: str):
        body = SweepRequestSerializer(data=request.data or {})
        body.is_valid(raise_exception=True)

        report = sweep(
            subject_ref,
            actor=request.user,
            dry_run=body.validated_data["dry_run"],
        )
        return Response(report.as_dict())
