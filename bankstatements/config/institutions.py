"""
Centralized institution configuration.

Base URLs, endpoint templates and page hostnames for every supported
institution. Adapters read their endpoints from here rather than hard-coding
them, so a moved endpoint is a one-line change.
"""

from typing import Any


class InstitutionsConfig:
  """Centralized per-institution endpoint configuration."""

  # TD Direct Investing (WebBroker)
  TD_BROKER_CONFIG = {
    "base_url": "https://webbroker.td.com/waw/brk/wb/services/rest",
    "profile_path": "/v1/eservices/profile?AJAXREQUEST=1",
    "accounts_path": (
      "/v2/accountsV2/account-groups?filter=ESERVICES_STATEMENTS_FILTER&AJAXREQUEST=1"
    ),
    "statements_path": "/v1/eservices/statements/{group_id}",
    "export_path": "/v1/export",
    "session_cookies": ["XSRF-TOKEN", "com.td.last_login"],
    "lookback_years": 7,
    "hostnames": ["webbroker.td.com"],
  }

  # MBNA Canada
  MBNA_CA_CONFIG = {
    "base_url": "https://service.mbna.ca/waw/mbna",
    "profile_path": "/customer-profile",
    "accounts_path": "/accounts/summary",
    "statements_path": "/accounts/{account_id}/statement-history/{year}",
    "download_path": (
      "/accounts/{account_id}/statement-history/open-save/selected-date/{date}"
    ),
    "session_cookies": ["com.td.last_login"],
    "hostnames": ["mbna.ca"],
  }

  # Tangerine
  TANGERINE_CONFIG = {
    "base_url": "https://secure.tangerine.ca",
    "profile_path": "/web/rest/v1/customers/my?include-servicing-systems=true",
    "accounts_path": "/web/rest/pfm/v1/accounts",
    "statements_path": "/web/rest/v1/customers/my/documents/statements",
    "download_path": "/web/docs/rest/v1/customers/my/documents/statements/{statement_id}",
    "session_cookies": ["CTOK"],
    "headers": {
      "accept-language": "en_CA",
      "x-web-flavour": "fbe",
    },
    "hostnames": ["tangerine.ca"],
  }

  # Wise
  WISE_CONFIG = {
    "base_url": "https://wise.com",
    "home_path": "/home",
    "statements_path": "/hold/v1/profiles/{profile_id}/statements-and-reports/balance-statement",
    "download_path": (
      "/gateway/v1/profiles/{profile_id}/statement-requests/{request_id}/statement-file"
    ),
    "session_cookie_prefix": "selected-profile-id-",
    # Public token embedded in the Wise web client, identical for every user
    "access_token": "Tr4n5f3rw153",
    "locale": "en-GB",
    "time_zone": "UTC",
    "hostnames": ["wise.com"],
  }

  # PayPal
  PAYPAL_CONFIG = {
    "base_url": "https://www.paypal.com",
    "profile_path": "/smartchat/chat-meta?pageURI=/myaccount/summary&isNativeEnabled=undefined",
    "summary_path": "/myaccount/summary",
    "balance_statements_path": "/myaccount/statements/api/statements",
    "balance_download_path": "/myaccount/statements/download",
    "credit_page_path": "/myaccount/credit/rewards-card/?source=FINANCIAL_SNAPSHOT",
    "credit_graphql_path": "/myaccount/credit/rewards-card/graphql/{operation}",
    "credit_download_path": "/myaccount/credit/rewards-card/statement/download",
    "credit_product": "CREDIT_CARD_PAYPAL_CONSUMER_REWARDS_US",
    "hostnames": ["paypal.com"],
  }

  # EQ Bank
  EQ_BANK_CONFIG = {
    "base_url": "https://web-api.eqbank.ca/web/v1.1",
    "profile_url": "https://api.eqbank.ca/auth/v3/login-details",
    "accounts_path": "/accounts/v2/accounts",
    "origin": "https://secure.eqbank.ca",
    "passphrase_cookie_prefix": "eq_uuid",
    # base64 of "eqToken"
    "token_storage_key": "ZXFUb2tlbg==",
    "hostnames": ["eqbank.ca"],
  }

  # Discover
  DISCOVER_CONFIG = {
    "portal_url": "https://portal.discover.com",
    "card_url": "https://card.discover.com",
    "bank_url": "https://bank.discover.com",
    "card_info_path": "/enterprise/navigation-api/v1/customer/info/card?",
    "bank_info_path": "/enterprise/navigation-api/v1/customer/info/bank?",
    "card_recent_path": "/cardissuer/statements/transactions/v1/recent",
    "card_statements_path": "/cardmembersvcs/statements/app/v2/stmt",
    "card_pdf_path": "/cardmembersvcs/statements/app/stmtPDF",
    "bank_statements_path": "/bank/deposits/servicing/documents/v1/accounts/{account_id}/statements",
    "session_cookies": ["customerId", "cif", "sectoken"],
    "account_cookie": "dfsedskey",
    "hostnames": ["discover.com"],
  }

  @classmethod
  def get_config(cls, bank_id: str, override: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Get configuration for an institution with optional overrides.

    Args:
        bank_id: Adapter identifier (e.g., 'td_broker', 'wise')
        override: Optional dictionary to override specific values

    Returns:
        Institution configuration dictionary
    """
    config_map = {
      "td_broker": cls.TD_BROKER_CONFIG,
      "mbna_ca": cls.MBNA_CA_CONFIG,
      "tangerine": cls.TANGERINE_CONFIG,
      "wise": cls.WISE_CONFIG,
      "paypal": cls.PAYPAL_CONFIG,
      "eq_bank": cls.EQ_BANK_CONFIG,
      "discover": cls.DISCOVER_CONFIG,
    }

    if bank_id not in config_map:
      raise KeyError(f"No institution configuration for '{bank_id}'")

    config = config_map[bank_id].copy()
    if override:
      config.update(override)

    return config

  @classmethod
  def hostnames(cls) -> dict[str, list[str]]:
    """Map each bank id to the page hostnames it serves."""
    return {
      bank_id: list(cls.get_config(bank_id)["hostnames"])
      for bank_id in (
        "td_broker",
        "mbna_ca",
        "tangerine",
        "wise",
        "paypal",
        "eq_bank",
        "discover",
      )
    }
