"""
Instruction text and JSON schema for receipt extraction.
"""
from typing import Any, Dict


def build_extraction_prompt(is_pdf: bool) -> str:
    """
    Build the instruction sent alongside the receipt file.

    Args:
        is_pdf: Whether the file is a PDF (otherwise an image)

    Returns:
        Prompt text
    """
    kind = "PDF" if is_pdf else "image"
    return f"""Extract receipt information from this {kind}.

Return the following information:
- date: The date of the receipt in YYYY-MM-DD format
- merchant: The name of the merchant/store
- description: A brief description of the items purchased (5 words or less)
- total: The total amount including taxes. Use positive numbers for purchases and negative numbers for returns/refunds
- card_last4: The last 4 digits of the card used for payment, or null if not shown

Analyze the receipt carefully and extract accurate information.
Respond ONLY with a JSON object matching the schema."""


def create_receipt_schema() -> Dict[str, Any]:
    """
    Create the strict JSON schema for one extracted receipt.

    Returns:
        JSON schema dictionary
    """
    return {
        "type": "object",
        "properties": {
            "date": {
                "type": "string",
                "description": "The date of the receipt in YYYY-MM-DD format"
            },
            "merchant": {
                "type": "string",
                "description": "The name of the merchant/store"
            },
            "description": {
                "type": "string",
                "description": "A brief description of items purchased (5 words or less, max 50 characters)"
            },
            "total": {
                "type": "number",
                "description": "The total amount including taxes. Positive for purchases, negative for returns"
            },
            "card_last4": {
                "type": ["string", "null"],
                "description": "Last 4 digits of the card number used for the transaction"
            }
        },
        "required": ["date", "merchant", "description", "total", "card_last4"],
        "additionalProperties": False
    }
