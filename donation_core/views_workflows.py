from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.exceptions import ValidationError

from .workflows import UnknownStatus, workflow_definition
from .workflows.registry import is_terminal, resolve_status, status_label


class WorkflowDefinitionView(APIView):
    """
    Returns full workflow definition for a subject role ("donor" / "recipient").
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, subject_role: str):
        try:
            data = workflow_definition(subject_role)
        except ValueError as e:
            raise ValidationError(str(e))
        return Response(data)


class StatusResolveView(APIView):
    """
    Resolves any stored status string (canonical, legacy alias or label).
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        value = request.query_params.get("value")
        if not value:
            raise ValidationError("value query parameter is required.")

        try:
            status = resolve_status(value)
        except UnknownStatus as e:
            raise ValidationError({"value": e.message})

        return Response(
            {
                "value": value,
                "status": status.value,
                "label": status_label(status),
                "terminal": is_terminal(status),
            }
        )
