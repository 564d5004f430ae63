"""Default templates per email event and `{{ name }}` placeholder rendering."""
import html as html_lib
import re
from dataclasses import dataclass

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")
TAG_RE = re.compile(r"<[^>]*>")
WS_RE = re.compile(r"\s+")
BRAND_RE = re.compile(r"\{\{\s*brandName\s*\}\}")

DEFAULT_BRAND_NAME = "Your Store"


@dataclass
class TemplateDefaults:
    name: str
    subject: str
    title: str
    lines: tuple[str, ...]


DEFAULT_TEMPLATES: dict[str, TemplateDefaults] = {
    "order_confirmation": TemplateDefaults(
        "Order Confirmation",
        "Your {{brandName}} order {{orderId}} is confirmed",
        "Order confirmed",
        ("We have received your order {{orderId}}.", "Total: {{orderTotal}}", "Items: {{orderItems}}"),
    ),
    "payment_confirmation": TemplateDefaults(
        "Payment Confirmation",
        "Payment received for order {{orderId}} - {{brandName}}",
        "Payment received",
        ("Payment for order {{orderId}} is confirmed.", "Amount: {{orderTotal}}", "Method: {{paymentMethod}}"),
    ),
    "order_shipped": TemplateDefaults(
        "Order Shipped",
        "Your order {{orderId}} is on the way",
        "Your order is on the way",
        ("Order {{orderId}} has shipped.", "Tracking: {{trackingLink}}", "Carrier: {{carrierName}}"),
    ),
    "order_delivered": TemplateDefaults(
        "Order Delivered",
        "Order {{orderId}} was delivered",
        "Order delivered",
        ("Order {{orderId}} was delivered.", "If anything is wrong, let us know."),
    ),
    "order_cancelled": TemplateDefaults(
        "Order Cancelled",
        "Order {{orderId}} has been cancelled",
        "Order cancelled",
        ("Order {{orderId}} has been cancelled.", "Reason: {{reason}}", "Refund: {{refundAmount}}"),
    ),
    "order_refunded": TemplateDefaults(
        "Order Refunded",
        "Refund processed for order {{orderId}}",
        "Refund processed",
        ("We processed your refund for order {{orderId}}.", "Amount: {{refundAmount}}", "Method: {{paymentMethod}}"),
    ),
    "abandoned_cart": TemplateDefaults(
        "Abandoned Cart",
        "Complete your order for {{cartTotal}}",
        "Finish your checkout",
        ("You left items in your cart.", "Total: {{cartTotal}}", "Complete your order: {{checkoutLink}}"),
    ),
    "password_reset": TemplateDefaults(
        "Password Reset",
        "Reset your {{brandName}} password",
        "Reset your password",
        ("Use the link to reset your password:", "{{resetLink}}", "Expires in {{expiresInMinutes}} minutes."),
    ),
    "account_welcome": TemplateDefaults(
        "Welcome",
        "Welcome to {{brandName}}",
        "Welcome",
        ("Hi {{customerName}}, thanks for joining {{brandName}}!",),
    ),
    "account_verification": TemplateDefaults(
        "Account Verification",
        "Verify your email for {{brandName}}",
        "Verify your email",
        ("Verify your account for {{brandName}}.", "Link: {{verificationLink}}", "Code: {{verificationCode}}"),
    ),
    "review_request": TemplateDefaults(
        "Review Request",
        "How was your {{brandName}} order {{orderId}}?",
        "How was your order?",
        ("Tell us about order {{orderId}}.", "Leave a review: {{reviewLink}}"),
    ),
    "low_stock_alert": TemplateDefaults(
        "Low Stock Alert",
        "Low stock warning: {{productName}}",
        "Low stock alert",
        ("{{productName}} (SKU {{sku}}) is low.", "Current: {{currentStock}} | Threshold: {{threshold}}"),
    ),
    "admin_new_order_alert": TemplateDefaults(
        "New Order Alert",
        "New order placed: {{orderId}}",
        "New order received",
        ("Order: {{orderId}}", "Customer: {{customerName}}", "Total: {{orderTotal}}", "Date: {{orderDate}}"),
    ),
}


@dataclass
class RenderableTemplate:
    event: str
    name: str
    subject: str
    html: str
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    enabled: bool = True


def replace_placeholders(text: str, variables: dict, escape: bool = False) -> str:
    """Unknown or None-valued placeholders render as empty strings.

    With escape=True values are HTML-escaped; the template text itself is left as is.
    """
    if not text:
        return ""

    def _sub(match: re.Match) -> str:
        value = variables.get(match.group(1).strip())
        if value is None:
            return ""
        return html_lib.escape(str(value)) if escape else str(value)

    return PLACEHOLDER_RE.sub(_sub, text)


def strip_html(html: str) -> str:
    return WS_RE.sub(" ", TAG_RE.sub(" ", html)).strip()


def base_email_html(title: str, lines: tuple[str, ...], brand_name: str) -> str:
    paragraphs = "".join(f'<p style="margin:0 0 12px 0;font-size:15px;color:#1f2937;">{line}</p>' for line in lines)
    return (
        '<div style="font-family:Arial,sans-serif;background:#f7fafc;padding:20px;">'
        '<div style="max-width:620px;margin:0 auto;background:#ffffff;border:1px solid #e5e7eb;">'
        f'<div style="background:#0f172a;color:#e2e8f0;padding:16px 20px;font-weight:700;">{brand_name}</div>'
        f'<div style="padding:20px 24px;"><h2 style="margin:0 0 12px 0;">{title}</h2>{paragraphs}</div>'
        f'<div style="padding:14px 20px;color:#475569;font-size:13px;">Sent by {brand_name}. '
        "If you need help, reply to this email.</div>"
        "</div></div>"
    )


def default_template(
    event: str,
    brand_name: str | None = None,
    from_email: str | None = None,
) -> RenderableTemplate:
    defaults = DEFAULT_TEMPLATES[event]
    brand = brand_name or DEFAULT_BRAND_NAME
    return RenderableTemplate(
        event=event,
        name=defaults.name,
        subject=BRAND_RE.sub(lambda _: brand, defaults.subject),
        html=base_email_html(defaults.title, defaults.lines, html_lib.escape(brand)),
        from_email=from_email,
        from_name=brand,
        reply_to=from_email,
    )


def render(template: RenderableTemplate, variables: dict) -> tuple[str, str, str]:
    """Returns (subject, html, text)."""
    subject = replace_placeholders(template.subject, variables)
    html_source = template.html or f"<h2>{template.name}</h2><p>This is a notification from your store.</p>"
    html = replace_placeholders(html_source, variables, escape=True)
    return subject, html, html_lib.unescape(strip_html(html))
