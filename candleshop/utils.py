import json

from django.http import JsonResponse


def _reject_constant(name):
    raise ValueError(f"Unsupported JSON constant {name}")


def load_json_body(request):
    """Parse a JSON object body; raises ValueError on anything else"""
    if not request.body:
        return {}
    try:
        # NaN and Infinity are not JSON, json.loads accepts them by default
        data = json.loads(request.body, parse_constant=_reject_constant)
    except ValueError:
        raise ValueError("Malformed JSON body")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object")
    return data


def json_error(message, status=400):
    return JsonResponse({"success": False, "error": message}, status=status)


def isoformat(value):
    return value.isoformat() if value else None


def parse_whole_number(value):
    """Accept 3, 3.0 and "3" but not 2.5, "abc" or booleans; None on failure"""
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if number != value and str(number) != str(value).strip():
        return None
    return number
