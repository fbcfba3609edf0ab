"""Generation function routes, POST /functions/v1/<name>."""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from personaops.api import pipeline_runner
from personaops.api.auth import body_of, require_user
from personaops.errors import ValidationError
from personaops.functions import discovery, generators, personalization, research

router = APIRouter(prefix="/functions/v1", tags=["functions"])


# ─── REQUEST MODELS ─────────────────────────────────────────────

class IcpRequest(BaseModel):
    websiteUrl: str = Field(min_length=1)


class PlaybookRequest(BaseModel):
    websiteUrl: str = Field(min_length=1)
    icp: Any
    gtmForm: Any

    @field_validator("icp", "gtmForm")
    @classmethod
    def present(cls, v):
        # Empty objects and arrays count as present; null, "", 0 and false do not
        if v is None or v is False or v == "" or (isinstance(v, (int, float)) and v == 0):
            raise ValueError("required")
        return v


class CompanyDiscoveryRequest(BaseModel):
    icpData: dict
    batchSize: int = Field(10, ge=1, le=100)


class ContactDiscoveryRequest(BaseModel):
    companies: List[dict]
    targetPersonas: Optional[List[dict]] = None


class EmailPersonalizationRequest(BaseModel):
    contacts: List[dict]
    icpData: Optional[dict] = None
    messagingAngles: Optional[List[str]] = None


class CompanyAnalyzeRequest(BaseModel):
    url: str = Field(min_length=1)


class GtmGenerateRequest(BaseModel):
    websiteUrl: str = Field(min_length=1)
    useExistingAnalysis: bool = False
    analysisId: Optional[int] = None


class PipelineRequest(BaseModel):
    action: str
    pipelineId: Optional[str] = None
    config: Optional[dict] = None


# ─── CACHED GENERATORS ──────────────────────────────────────────

@router.post("/icp-generator")
def icp_generator(user_id: str = Depends(require_user),
                  body: IcpRequest = Depends(body_of(IcpRequest))):
    return generators.icp_for(user_id, body.websiteUrl)


@router.post("/playbook-generator")
def playbook_generator(user_id: str = Depends(require_user),
                       body: PlaybookRequest = Depends(body_of(PlaybookRequest))):
    return generators.playbook_for(user_id, body.websiteUrl, body.icp, body.gtmForm)


@router.post("/company-analysis")
def company_analysis(user_id: str = Depends(require_user),
                     body: IcpRequest = Depends(body_of(IcpRequest))):
    return generators.analysis_for(user_id, body.websiteUrl)


# ─── DISCOVERY / PERSONALIZATION ────────────────────────────────

@router.post("/company-discovery")
def company_discovery(user_id: str = Depends(require_user),
                      body: CompanyDiscoveryRequest = Depends(body_of(CompanyDiscoveryRequest))):
    return discovery.discover_companies(body.icpData, body.batchSize)


@router.post("/contact-discovery")
def contact_discovery(user_id: str = Depends(require_user),
                      body: ContactDiscoveryRequest = Depends(body_of(ContactDiscoveryRequest))):
    return discovery.discover_contacts(body.companies, body.targetPersonas)


@router.post("/email-personalization")
def email_personalization(user_id: str = Depends(require_user),
                          body: EmailPersonalizationRequest = Depends(body_of(EmailPersonalizationRequest))):
    return personalization.personalize_emails(body.contacts, body.icpData, body.messagingAngles)


# ─── RESEARCH ───────────────────────────────────────────────────

@router.post("/company-analyze")
def company_analyze(user_id: str = Depends(require_user),
                    body: CompanyAnalyzeRequest = Depends(body_of(CompanyAnalyzeRequest))):
    return research.analyze_company(user_id, body.url)


@router.post("/gtm-generate")
def gtm_generate(user_id: str = Depends(require_user),
                 body: GtmGenerateRequest = Depends(body_of(GtmGenerateRequest))):
    return research.generate_gtm_playbook(user_id, body.websiteUrl,
                                          body.useExistingAnalysis, body.analysisId)


# ─── ORCHESTRATOR ───────────────────────────────────────────────

@router.post("/pipeline-orchestrator")
def pipeline_orchestrator(user_id: str = Depends(require_user),
                          body: PipelineRequest = Depends(body_of(PipelineRequest))):
    if body.action == "start":
        state = pipeline_runner.start_pipeline(user_id, body.config or {})
        return {"success": True, "pipelineId": state["id"], "status": state["status"],
                "message": "Pipeline started successfully"}

    if body.action == "status":
        state = pipeline_runner.get_owned_state(user_id, body.pipelineId)
        return {"success": True, "pipeline": pipeline_runner.state_to_dict(state)}

    if body.action == "results":
        return {"success": True, "results": pipeline_runner.get_results(user_id, body.pipelineId)}

    if body.action == "pause":
        state = pipeline_runner.pause_pipeline(user_id, body.pipelineId)
        return {"success": True, "pipelineId": body.pipelineId, "status": state["status"]}

    if body.action == "resume":
        state = pipeline_runner.resume_pipeline(user_id, body.pipelineId)
        return {"success": True, "pipelineId": body.pipelineId, "status": state["status"]}

    raise ValidationError("Invalid action")
