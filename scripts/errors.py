class ReconcileError(Exception):
    """Base failure for every EC2 conversion step."""

    def __init__(self, message, operation=None, instance_id=None, region=None, detail=None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.instance_id = instance_id
        self.region = region
        self.detail = detail

    def diagnostics(self):
        lines = [self.message, "Debug Info:"]
        if self.operation:
            lines.append(f"  Operation: {self.operation}")
        if self.region:
            lines.append(f"  Region: {self.region}")
        if self.instance_id:
            lines.append(f"  Instance ID: {self.instance_id}")
        if self.detail:
            lines.append(f"  AWS Output: {self.detail}")
        return lines

    def __str__(self):
        return "\n".join(self.diagnostics())


class AuthenticationFailed(ReconcileError):
    pass


class NotFoundOrForbidden(ReconcileError):
    pass


class RegionQueryFailed(ReconcileError):
    pass


class TypeUnavailableInRegion(ReconcileError):
    pass


class PreflightRejected(ReconcileError):
    pass


class StopRequestRejected(ReconcileError):
    pass


class StopTimeout(ReconcileError):
    pass


class ModifyRejected(ReconcileError):
    pass


class StartRequestRejected(ReconcileError):
    pass


class StartTimeout(ReconcileError):
    pass


class SelectionCancelled(ReconcileError):
    pass


class InvalidInput(ReconcileError):
    pass
