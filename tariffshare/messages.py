"""User-facing (Persian) messages shown to clinic staff."""

from __future__ import annotations

NON_POSITIVE_PRICE = "مبلغ تعرفه باید بزرگتر از صفر باشد"
FRACTIONAL_PRICE = "مبلغ تعرفه باید به ریال و بدون اعشار باشد"
PERCENT_OUT_OF_RANGE = "درصد {label} باید بین 0 تا 100 باشد"
PERCENT_SUM_EXCEEDED = "مجموع درصدها نمی‌تواند بیش از 100 باشد"
NEGATIVE_DEDUCTIBLE = "مبلغ فرانشیز نمی‌تواند منفی باشد"
NEGATIVE_MAX_PAYMENT = "سقف پرداخت بیمه تکمیلی نمی‌تواند منفی باشد"
PAYMENT_LIMIT_EXCEEDED = "{subject} ({amount:,}) از سقف مجاز ({limit:,}) بیشتر است"
RULE_STORE_UNAVAILABLE = "دسترسی به قوانین بیمه امکان‌پذیر نیست"

PERCENT_LABELS = {
    "patient": "سهم بیمار",
    "insurer": "سهم بیمه",
    "primary": "پوشش بیمه پایه",
    "supplementary": "پوشش بیمه تکمیلی",
}

LIMIT_SUBJECTS = {
    "insurer": "سهم بیمه",
    "patient": "سهم بیمار",
    "service_amount": "مبلغ خدمت",
}


def percent_out_of_range(kind: str) -> str:
    return PERCENT_OUT_OF_RANGE.format(label=PERCENT_LABELS.get(kind, kind))


def payment_limit_exceeded(applies_to: str, amount: int, limit: int) -> str:
    return PAYMENT_LIMIT_EXCEEDED.format(
        subject=LIMIT_SUBJECTS.get(applies_to, applies_to), amount=amount, limit=limit
    )
