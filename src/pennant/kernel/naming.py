from __future__ import annotations


def generate_feature_name(context: str, flag: str, sub_flag: str = "") -> str:
    """
    Build a consistent flag name: "<context>:<flag>" or "<context>:<flag>.<sub_flag>".
    """
    if not context:
        raise ValueError("Context is required")
    if not flag:
        raise ValueError("Flag is required")
    if sub_flag == "":
        return f"{context}:{flag}"
    return f"{context}:{flag}.{sub_flag}"
