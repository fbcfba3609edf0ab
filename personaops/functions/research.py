"""
PersonaOps - Company Analysis and GTM Playbook
Five-phase OpenRouter research with no demo fallback. The finished analysis
or playbook is stored; storage failures are recorded but do not fail the
request, which has already paid for the LLM work.
"""

import logging

from personaops.agents import researcher
from personaops.agents.error_handler import safe_execute
from personaops.db import models
from personaops.db.connection import gen_id

logger = logging.getLogger("personaops.functions.research")


def analyze_company(user_id: str, url: str) -> dict:
    run_id = gen_id("run")
    log_extra = {"user_id": user_id, "function_name": "company-analyze"}
    logger.info("Starting company analysis for %s", url, extra=log_extra)

    analysis = researcher.run_company_analysis(url, user_id, run_id)

    safe_execute(
        models.create_analyzer_output,
        args=(user_id, url, analysis["companyName"], analysis),
        phase="save_analyzer_output", user_id=user_id, function_name="company-analyze",
    )
    report_id = safe_execute(
        models.create_saved_report,
        args=(user_id, analysis["companyName"], url, analysis),
        phase="save_report", user_id=user_id, function_name="company-analyze",
    )

    logger.info("Company analysis completed for %s", url, extra=log_extra)
    return {"success": True, "analysis": analysis, "reportId": report_id}


def _seed_from_report(report: dict) -> dict:
    seed = dict(report["report_data"]) if isinstance(report.get("report_data"), dict) else {}
    seed.setdefault("companyName", report.get("company_name"))
    seed.setdefault("website", report.get("url"))
    return seed


def _report_label(website_url: str, playbook: dict) -> str:
    """First ICP industry of the playbook, else the site's domain."""
    gtm = playbook.get("gtmPlaybook")
    icp = gtm.get("idealCustomerProfile") if isinstance(gtm, dict) else None
    firmographics = icp.get("firmographics") if isinstance(icp, dict) else None
    industries = firmographics.get("industry") if isinstance(firmographics, dict) else None
    if isinstance(industries, list) and industries:
        return str(industries[0])
    return researcher.extract_domain(website_url)


def generate_gtm_playbook(user_id: str, website_url: str, use_existing_analysis: bool = False,
                          analysis_id: int = None) -> dict:
    run_id = gen_id("run")
    log_extra = {"user_id": user_id, "function_name": "gtm-generate"}
    logger.info("Starting GTM playbook generation for %s", website_url, extra=log_extra)

    existing = None
    if use_existing_analysis and analysis_id is not None:
        report = safe_execute(
            models.get_saved_report, args=(analysis_id, user_id),
            phase="load_report", user_id=user_id, function_name="gtm-generate",
        )
        if report:
            logger.info("Using existing analysis %s (%s)", analysis_id, report.get("company_name"),
                        extra=log_extra)
            existing = _seed_from_report(report)

    playbook = researcher.run_gtm_playbook(website_url, user_id, run_id, existing_analysis=existing)

    label = _report_label(website_url, playbook)

    playbook_id = safe_execute(
        models.create_saved_report,
        args=(user_id, label, website_url, playbook),
        phase="save_report", user_id=user_id, function_name="gtm-generate",
    )

    logger.info("GTM playbook generation completed for %s", website_url, extra=log_extra)
    return {"success": True, "gtmPlaybook": playbook, "playbookId": playbook_id}
