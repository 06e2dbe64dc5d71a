"""
Railway-oriented error handling shared by the cache, the store adapter and the API.

    from railway import Result, ErrorCode

    def require_plan(plan: PayPlan | None, plan_type: str) -> Result[PayPlan]:
        return Result.from_optional(plan, f"pay plan {plan_type} not found", ErrorCode.NOT_FOUND)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]
