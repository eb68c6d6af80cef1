from .accounts import dedupe_accounts, map_account_type, mask_account_number, sort_statements
from .dates import to_iso_date
from .documents import decode_bridge_body, looks_like_pdf, to_data_url, validate_document

__all__ = [
  "decode_bridge_body",
  "dedupe_accounts",
  "looks_like_pdf",
  "map_account_type",
  "mask_account_number",
  "sort_statements",
  "to_data_url",
  "to_iso_date",
  "validate_document",
]
