"""
PersonaOps - Email Personalization
One OpenRouter completion per contact, parsed from SUBJECT:/BODY: lines.
Without a key, or when a call fails, the contact gets the template email.
"""

import logging
from datetime import datetime, timezone

from personaops.agents import demo_data
from personaops.agents.llm_gateway import LLMGateway
from personaops.errors import UpstreamProviderError

logger = logging.getLogger("personaops.functions.personalization")

SYSTEM_PROMPT = ("You are an expert B2B email copywriter specializing in personalized outreach. "
                 "Generate concise, professional, and engaging cold emails.")

MAX_SUBJECT = 100
MAX_BODY = 500


def build_personalization_prompt(contact: dict, icp_data: dict, messaging_angles: list) -> str:
    pain_points = demo_data.lead_pain_points(icp_data)
    messaging = messaging_angles[0] if messaging_angles else "improving efficiency and growth"
    return f"""
Create a personalized cold email for:
- Name: {contact.get('firstName')} {contact.get('lastName')}
- Title: {contact.get('title')}
- Company: {contact.get('companyName')}
- Industry: {contact.get('companyIndustry')}

Key messaging angles: {messaging}
Main pain points to address: {', '.join(str(p) for p in pain_points)}

Requirements:
- Subject line (under 50 characters)
- Email body (3-4 sentences max)
- Professional but conversational tone
- Include specific company/role reference
- Clear but soft call-to-action
- No aggressive sales language

Format your response as:
SUBJECT: [subject line]
BODY: [email body]
"""


def parse_email_content(content: str, contact: dict) -> dict:
    subject = ""
    body = ""
    for line in content.split("\n"):
        if line.startswith("SUBJECT:"):
            subject = line[len("SUBJECT:"):].strip()
        elif line.startswith("BODY:"):
            body = line[len("BODY:"):].strip()

    # Model ignored the format: first paragraph is the subject, second the body
    if not subject or not body:
        parts = content.split("\n\n")
        first = parts[0].strip()
        if first.lower().startswith("subject:"):
            first = first[len("subject:"):].strip()
        subject = first or f"Quick question about {contact.get('companyName')}"
        body = parts[1] if len(parts) > 1 and parts[1] else content

    return dict(
        contact,
        subject=subject[:MAX_SUBJECT],
        body=body[:MAX_BODY],
        personalizedHook=f"Noticed {contact.get('companyName')} is in {contact.get('companyIndustry')}",
    )


def personalize_email(contact: dict, icp_data: dict, messaging_angles: list,
                      gateway: LLMGateway = None) -> dict:
    gateway = gateway or LLMGateway()
    if not gateway.configured:
        email = demo_data.template_email(contact, icp_data)
    else:
        try:
            text = gateway.complete(build_personalization_prompt(contact, icp_data, messaging_angles),
                                    stage_name="email", system=SYSTEM_PROMPT,
                                    max_tokens=300, temperature=0.7)
            email = parse_email_content(text, contact)
        except UpstreamProviderError as e:
            logger.warning("Email generation failed for %s, using template: %s",
                           contact.get("email"), e.message)
            email = demo_data.template_email(contact, icp_data)
    email["generatedAt"] = datetime.now(timezone.utc).isoformat()
    return email


def personalize_emails(contacts: list, icp_data: dict = None, messaging_angles: list = None) -> dict:
    gateway = LLMGateway()
    if not gateway.configured:
        logger.warning("OpenRouter API key not configured, returning template emails")
    emails = [personalize_email(c, icp_data or {}, messaging_angles or [], gateway) for c in contacts]
    logger.info("Generated %d personalized emails", len(emails),
                extra={"function_name": "email-personalization"})
    return {"success": True, "emails": emails, "totalGenerated": len(emails)}
