from datetime import datetime


def completed(step_name: str, by=None) -> dict:
    return {
        "stepName": step_name,
        "completed": True,
        "completedAt": datetime(2026, 3, 1, 12, 0).isoformat(),
        "completedBy": by,
        "notes": "",
    }


def pending(step_name: str) -> dict:
    return {"stepName": step_name, "completed": False, "completedAt": None, "completedBy": None, "notes": ""}


def template_step(name: str, order: int, status_mapping: str = None, **triggers) -> dict:
    return {
        "name": name,
        "description": None,
        "order": order,
        "statusMapping": status_mapping,
        "requiredRole": None,
        "actionLabel": None,
        "requiresDeliverables": False,
        "triggers": triggers,
    }
