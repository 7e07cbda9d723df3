# core/email_templates.py
"""Jinja2 sources for outgoing email bodies, keyed by template name."""

_BASE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{% block title %}{% endblock %}</title>
  <style>
    body { font-family: Arial, sans-serif; line-height: 1.7; color: #0f172a; background: #f8fafc; }
    .container { max-width: 680px; margin: 24px auto; background: #ffffff; border-radius: 12px; overflow: hidden; }
    .header { background: #1e40af; color: #ffffff; padding: 28px 32px; }
    .header h1 { margin: 0; font-size: 22px; }
    .meta { color: #e2e8f0; font-size: 13px; margin-top: 6px; }
    .content { padding: 28px 32px; }
    .label { font-size: 12px; color: #475569; text-transform: uppercase; letter-spacing: 0.6px; }
    .value { font-size: 15px; font-weight: 600; margin-bottom: 14px; }
    .message { border-left: 4px solid #1e40af; padding: 12px 16px; white-space: pre-wrap; }
    .footer { background: #f1f5f9; color: #475569; font-size: 12px; padding: 20px 28px; text-align: center; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{{ self.title() }}</h1>
      <div class="meta">Submitted on {{ submitted_at }}</div>
    </div>
    <div class="content">
      {% block content %}{% endblock %}
    </div>
    <div class="footer">{% block footer %}{% endblock %}</div>
  </div>
</body>
</html>
"""

_FIELDS = """{% macro field(label, value) %}
<div class="label">{{ label }}</div>
<div class="value">{{ value if value else 'N/A' }}</div>
{% endmacro %}"""

CONTACT_INQUIRY = """{% extends "base.html" %}
{% from "fields.html" import field %}
{% block title %}New Contact Inquiry{% endblock %}
{% block content %}
{{ field('First Name', inquiry.firstName) }}
{{ field('Last Name', inquiry.lastName) }}
{{ field('Email', inquiry.email) }}
{{ field('Phone', inquiry.phone) }}
{{ field('Company', inquiry.company) }}
{{ field('Industry', inquiry.industry) }}
{{ field('Service Needed', inquiry.service) }}
{{ field('Consent Given', 'Yes' if inquiry.consent else 'No') }}
<div class="label">Message</div>
<div class="message">{{ inquiry.message }}</div>
{% endblock %}
{% block footer %}This inquiry was submitted from the CBM website contact form. Reply to this email to respond to the sender.{% endblock %}
"""

DOCUMENT_VERIFICATION = """{% extends "base.html" %}
{% from "fields.html" import field %}
{% block title %}Document Verification Request{% endblock %}
{% block content %}
{{ field('First Name', verification.firstName) }}
{{ field('Last Name', verification.lastName) }}
{{ field('Email', verification.email) }}
{{ field('Company', verification.companyName) }}
{{ field('Job Title', verification.jobTitle) }}
{{ field('Location', verification.location) }}
<div class="label">Comments</div>
<div class="message">{{ verification.comments or 'N/A' }}</div>
<div class="label">Attached documents</div>
<ul>
{% for name in attachments %}  <li>{{ name }}</li>
{% endfor %}</ul>
{% endblock %}
{% block footer %}Submitted through the CBM document verification form.{% endblock %}
"""

JOB_APPLICATION = """{% extends "base.html" %}
{% from "fields.html" import field %}
{% block title %}New Job Application: {{ application.position }}{% endblock %}
{% block content %}
{{ field('Applicant', application.firstName ~ ' ' ~ application.lastName) }}
{{ field('Email', application.email) }}
{{ field('Phone', application.phone) }}
{{ field('Position', application.position) }}
{{ field('Department', application.department) }}
{{ field('Experience', application.experience) }}
{{ field('LinkedIn', application.linkedinProfile) }}
{{ field('Portfolio', application.portfolio) }}
{{ field('Available From', application.availableFrom) }}
{{ field('Expected Salary', application.expectedSalary) }}
<div class="label">Cover Letter</div>
<div class="message">{{ application.coverLetter }}</div>
<p>Resume attached: {{ resume_name }}</p>
{% endblock %}
{% block footer %}This application was submitted through the CBM Careers portal.{% endblock %}
"""

APPLICATION_CONFIRMATION = """{% extends "base.html" %}
{% block title %}Application Received{% endblock %}
{% block content %}
<p>Dear {{ application.firstName }},</p>
<p>Thank you for applying for the <strong>{{ application.position }}</strong> position
in our {{ application.department }} department. We have received your application and
our recruitment team will review it shortly.</p>
<p>We typically respond within 5-7 business days.</p>
<p>Best regards,<br>CBM Careers Team</p>
{% endblock %}
{% block footer %}This is an automated message, please do not reply.{% endblock %}
"""

OTP_CODE = """<div style="font-family: Arial, sans-serif;">
  <h2>CBM Admin Login Code</h2>
  <p>Your one-time verification code is:</p>
  <div style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{{ code }}</div>
  <p>This code will expire in {{ ttl_minutes }} minutes.</p>
</div>
"""

TEMPLATES = {
    'base.html': _BASE,
    'fields.html': _FIELDS,
    'contact_inquiry.html': CONTACT_INQUIRY,
    'document_verification.html': DOCUMENT_VERIFICATION,
    'job_application.html': JOB_APPLICATION,
    'application_confirmation.html': APPLICATION_CONFIRMATION,
    'otp_code.html': OTP_CODE,
}
