# Presentation package

from codeguard.presentation.result_formatter import (
    format_guidance_prompt,
    format_load_errors,
    format_result_dict,
    format_result_json,
    format_result_text,
    format_rule_listing,
)

__all__ = [
    "format_guidance_prompt",
    "format_load_errors",
    "format_result_dict",
    "format_result_json",
    "format_result_text",
    "format_rule_listing",
]
