"""HTML bodies for the transactional and marketing email templates.

Templates are Jinja2 with autoescape on. Fields that carry admin-authored
HTML (summary, updateContent, content, alertContent, actionRequired) are
marked ``|safe``; everything else, links included, is escaped.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from jinja2 import DictLoader, Environment

from pocketlawyer.config import settings

TEMPLATE_NAMES = (
    "welcome",
    "reset-password",
    "chat-summary",
    "system-update",
    "trial-reminder",
    "account-verification",
    "newsletter",
    "legal-alert",
    "weekly-summary",
    "document-shared",
    "subscription-confirmation",
    "custom",
)

MACROS = """
{% macro button(href, label, color="#007bff") -%}
<div style="text-align: center; margin: 30px 0;"><a href="{{ href }}" style="background-color: {{ color }}; color: white; padding: 12px 20px; text-decoration: none; border-radius: 4px;">{{ label }}</a></div>
{%- endmacro %}
{% macro greeting(data) -%}
<p>Hello {{ data.name or "there" }},</p>
{%- endmacro %}
"""

LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
{% block header %}{% if title %}<div style="background-color: {{ header_bg|default('#f8f9fa') }}; padding: 20px; text-align: center;"><h1 style="color: {{ header_color|default('#333') }};">{{ title }}</h1>{% if subtitle %}<p style="color: #666;">{{ subtitle }}</p>{% endif %}</div>{% endif %}{% endblock %}
<div style="padding: 20px;">{% block body %}{% endblock %}</div>
<div style="background-color: #f8f9fa; padding: 15px; text-align: center; font-size: 12px; color: #666;">
<p>&copy; {{ year }} PocketLawyer - Legal guidance at your fingertips</p>
<p><a href="{{ base_url }}/profile/notifications" style="color: #007bff; text-decoration: none;">Email Preferences</a> | <a href="{{ base_url }}/terms" style="color: #007bff; text-decoration: none;">Terms of Service</a> | <a href="{{ base_url }}/privacy" style="color: #007bff; text-decoration: none;">Privacy Policy</a></p>
</div>
</div>
"""

_SOURCES = {
    "_macros.html": MACROS,
    "_layout.html": LAYOUT,
    "welcome": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Welcome to PocketLawyer" %}
{% block body %}
{{ greeting(data) }}
<p>Thank you for creating an account with PocketLawyer. We're excited to help you navigate legal questions in Cameroon.</p>
<p>You now have full access to all features including:</p>
<ul><li>Unlimited conversations with our legal AI</li><li>Chat history saved for future reference</li><li>Personalized legal guidance</li></ul>
{{ button(base_url, "Get Started", "#4CAF50") }}
{% endblock %}
""",
    "reset-password": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Password Reset Request" %}
{% block body %}
{{ greeting(data) }}
<p>We received a request to reset your password. Click the link below to create a new password:</p>
{{ button(data.resetLink or "", "Reset Password") }}
<p>If you didn't request a password reset, you can ignore this email.</p>
<p>The link will expire in 1 hour for security reasons.</p>
{% endblock %}
""",
    "chat-summary": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Chat Summary" %}
{% block body %}
{{ greeting(data) }}
<p>Here's a summary of your recent conversation with PocketLawyer:</p>
<div style="background-color: #f9f9f9; border-left: 4px solid #007bff; padding: 15px; margin: 20px 0;">{{ (data.summary or "No summary available")|safe }}</div>
{{ button(base_url ~ "/chat/" ~ (data.chatId or ""), "View Full Conversation") }}
{% endblock %}
""",
    "system-update": """
{% extends "_layout.html" %}{% from "_macros.html" import greeting %}
{% set title = "PocketLawyer Update" %}
{% block body %}
{{ greeting(data) }}
<p>We're excited to announce some updates to PocketLawyer:</p>
<div style="background-color: #f9f9f9; border: 1px solid #eaeaea; padding: 15px; margin: 20px 0; border-radius: 4px;">{{ (data.updateContent or "No update details available")|safe }}</div>
{% endblock %}
""",
    "trial-reminder": """
{% extends "_layout.html" %}{% from "_macros.html" import button %}
{% set title = "Trial Conversations Remaining: " ~ (data.conversationsLeft if data.conversationsLeft is defined else "") %}
{% set header_bg = "#fff3cd" %}{% set header_color = "#856404" %}
{% block body %}
<p>Hello there,</p>
<p>This is a friendly reminder that you have {{ data.conversationsLeft if data.conversationsLeft is defined else "" }} trial conversations remaining with PocketLawyer.</p>
<p>To ensure continued access to legal guidance, we recommend creating a free account.</p>
{{ button(base_url ~ "/sign-up", "Create Free Account", "#4CAF50") }}
{% endblock %}
""",
    "account-verification": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Verify Your Email" %}
{% block body %}
{{ greeting(data) }}
<p>Thank you for creating an account with PocketLawyer. To complete your registration, please verify your email address:</p>
{{ button(data.verificationLink or "", "Verify Email", "#28a745") }}
<p>If you did not create an account with PocketLawyer, you can safely ignore this email.</p>
{% endblock %}
""",
    "newsletter": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = data.title or "PocketLawyer Newsletter" %}
{% block body %}
{{ greeting(data) }}
{{ (data.content or "<p>No content available</p>")|safe }}
{% set cta = data.callToAction or {} %}
{% if cta.link %}{{ button(cta.link, cta.text or "Read more") }}{% endif %}
{% endblock %}
""",
    "legal-alert": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Legal Alert - " ~ (data.alertType or "Important Update") %}
{% set header_bg = "#dc3545" %}{% set header_color = "white" %}
{% block body %}
{{ greeting(data) }}
<p><strong>{{ data.headline or "Important Legal Update" }}</strong></p>
<div style="background-color: #f9f9f9; border-left: 4px solid #dc3545; padding: 15px; margin: 20px 0;">{{ (data.alertContent or "No alert content available")|safe }}</div>
{% if data.actionRequired %}<div style="background-color: #fff3cd; border: 1px solid #ffeeba; padding: 15px; margin: 20px 0; border-radius: 4px;"><strong>Action Required:</strong> {{ data.actionRequired|safe }}</div>{% endif %}
{% if data.link %}{{ button(data.link, "View Details", "#dc3545") }}{% endif %}
{% endblock %}
""",
    "weekly-summary": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Your Weekly Legal Summary" %}
{% set subtitle = data.weekRange or "This Week" %}
{% block body %}
{{ greeting(data) }}
{% if data.activityStats %}
<h2 style="border-bottom: 1px solid #eee; padding-bottom: 10px;">Your Activity</h2>
<div style="display: flex; justify-content: space-around; text-align: center; margin: 20px 0;">
{% for key, label, color in [("conversations", "Conversations", "#007bff"), ("documents", "Documents", "#28a745"), ("searches", "Searches", "#fd7e14")] %}
<div><div style="font-size: 24px; font-weight: bold; color: {{ color }};">{{ data.activityStats.get(key, 0) }}</div><div style="color: #666;">{{ label }}</div></div>
{% endfor %}
</div>
{% endif %}
{% if data.recentConversations %}
<h2 style="border-bottom: 1px solid #eee; padding-bottom: 10px;">Recent Conversations</h2>
<ul style="padding-left: 20px;">
{% for conv in data.recentConversations %}
<li style="margin-bottom: 10px;"><a href="{{ base_url }}/chat/{{ conv.id or '' }}" style="color: #007bff; text-decoration: none; font-weight: bold;">{{ conv.title or "" }}</a><div style="color: #666; font-size: 14px;">{{ conv.date or "" }}</div></li>
{% endfor %}
</ul>
{% endif %}
{% if data.legalUpdates %}
<h2 style="border-bottom: 1px solid #eee; padding-bottom: 10px;">Legal Updates</h2>
<div style="margin-top: 15px;">
{% for update in data.legalUpdates %}
<div style="margin-bottom: 15px; padding-bottom: 15px; border-bottom: 1px dashed #eee;"><h3 style="margin: 0 0 5px 0;">{{ update.title or "" }}</h3><p style="margin: 0 0 10px 0; color: #666;">{{ update.summary or "" }}</p>{% if update.link %}<a href="{{ update.link }}" style="color: #007bff; text-decoration: none;">Read more</a>{% endif %}</div>
{% endfor %}
</div>
{% endif %}
{{ button(base_url, "Go to PocketLawyer") }}
{% endblock %}
""",
    "document-shared": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Document Shared With You" %}
{% block body %}
{{ greeting(data) }}
<p>{{ data.senderName or "Someone" }} has shared a document with you.</p>
<div style="background-color: #f9f9f9; border: 1px solid #eaeaea; border-radius: 4px; padding: 15px; margin: 20px 0;">
<h3 style="margin: 0 0 5px 0;">{{ data.documentName or "Unnamed Document" }}</h3>
<p style="margin: 0; color: #666; font-size: 14px;">{{ data.documentType or "Document" }} - {{ data.documentSize or "Unknown size" }}</p>
{% if data.message %}<div style="margin-top: 15px; padding-top: 15px; border-top: 1px solid #eaeaea;"><p style="margin: 0; font-style: italic;">"{{ data.message }}"</p></div>{% endif %}
</div>
{{ button(data.documentUrl or base_url, "View Document", "#28a745") }}
{% endblock %}
""",
    "subscription-confirmation": """
{% extends "_layout.html" %}{% from "_macros.html" import button, greeting %}
{% set title = "Legal Updates Subscription Confirmed" %}
{% block body %}
{{ greeting(data) }}
<p>Thank you for subscribing to our Legal Updates newsletter! Your subscription has been confirmed.</p>
<p>You'll now receive the latest articles, legal insights, and resources on Cameroonian law directly to your inbox.</p>
<div style="background-color: #f5f5f5; border-left: 4px solid #4CAF50; padding: 15px; margin: 20px 0;">
<p style="margin-top: 0;"><strong>What to expect:</strong></p>
<ul style="padding-left: 20px;"><li>Legal news and updates from Cameroon</li><li>Practical guides on common legal issues</li><li>Explanations of new legislation and regulations</li><li>Tips on protecting your rights and interests</li></ul>
</div>
{{ button(base_url ~ "/blog", "Browse Our Legal Resources", "#4CAF50") }}
{% endblock %}
""",
    "custom": """
{% extends "_layout.html" %}
{% block body %}<h1>{{ data.subject or "Notification" }}</h1><p>{{ (data.content or "No content provided")|safe }}</p>{% endblock %}
""",
    "_default": """
{% extends "_layout.html" %}
{% block body %}<h1>{{ subject }}</h1><p>No template content available.</p>{% endblock %}
""",
    "_document.html": """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body>
{{ content|safe }}
</body>
</html>
""",
}

env = Environment(
    loader=DictLoader(_SOURCES),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_template(template: str, subject: str, data: Optional[Dict[str, Any]] = None) -> str:
    """Render a template to a full HTML document (with a body tag for pixel injection)."""
    data = data or {}

    # Custom HTML is sent as given
    if template == "custom" and data.get("htmlContent"):
        content = data["htmlContent"]
    else:
        name = template if template in TEMPLATE_NAMES else "_default"
        content = env.get_template(name).render(
            data=data,
            subject=subject,
            base_url=settings.public_base_url,
            year=datetime.now().year,
        )

    if "</body>" in content.lower():
        return content
    return env.get_template("_document.html").render(content=content)
