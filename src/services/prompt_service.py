from __future__ import annotations

from langchain_core.prompts import PromptTemplate

from src.core.config import settings
from src.core.schemas import LegislationPassage
from src.core.sectors import SectorConfig, get_sector_config


ANALYSIS_SYSTEM_PROMPT = "You are an expert Australian compliance auditor. Respond only in valid JSON."

DEFAULT_DOCUMENT_TYPE = "Policy Document"

ANALYSIS_HEADER = (
    "You are an expert Australian compliance auditor specializing in {full_name}.\n\n"
    "Analyze this {document_kind} document for compliance with {full_name}, regulated by {authority}.\n\n"
    "KEY COMPLIANCE AREAS TO CHECK:\n{key_areas}\n"
    "{legislation}\n\n"
    'DOCUMENT TEXT:\n"""\n{document}\n"""\n\n'
)

ANALYSIS_TAIL = (
    "Analyze thoroughly against the legislation provided and respond in this exact JSON format "
    "(no markdown, no code blocks):\n"
    "{{\n"
    '  "sector": "{sector}",\n'
    '  "sectorName": "{sector_name}",\n'
    '  "documentType": "{document_type}",\n'
    '  "overallScore": <number 0-100>,\n'
    '  "overallStatus": "<COMPLIANT|PARTIAL|NON_COMPLIANT|CRITICAL>",\n'
    '  "riskLevel": "<LOW|MEDIUM|HIGH|CRITICAL>",\n'
    '  "summary": "<2-3 sentence executive summary>",\n'
    '  "findings": [\n'
    "    {{\n"
    '      "id": <number>,\n'
    '      "area": "<compliance area from list above>",\n'
    '      "title": "<specific finding title>",\n'
    '      "severity": "<CRITICAL|HIGH|MEDIUM|LOW|INFO>",\n'
    '      "status": "<COMPLIANT|GAP|PARTIAL|NOT_ADDRESSED>",\n'
    '      "description": "<detailed explanation>",\n'
    '      "evidence": "<quote from document if found, or null>",\n'
    '      "regulation": "<specific regulation/standard reference>",\n'
    '      "recommendation": "<specific action to remediate>",\n'
    '      "priority": <number 1-10>\n'
    "    }}\n"
    "  ],\n"
    '  "strengths": [{{"area": "<area>", "description": "<what\'s done well>"}}],\n'
    '  "criticalGaps": ["<list of most urgent gaps>"],\n'
    '  "actionPlan": [{{"priority": <1-5>, "action": "<specific action>", '
    '"timeframe": "<immediate|7 days|30 days|90 days>", "responsibility": "<who should action this>"}}],\n'
    '  "complianceByArea": [{{"area": "<compliance area>", "score": <0-100>, "status": "<COMPLIANT|PARTIAL|GAP>"}}],\n'
    '  "regulatoryReferences": [{{"reference": "<specific section/clause>", "description": "<what it requires>"}}],\n'
    '  "nextAuditFocus": ["<areas to focus on in next review>"]\n'
    "}}"
)

_analysis_prompt = PromptTemplate(
    template=ANALYSIS_HEADER + ANALYSIS_TAIL,
    input_variables=[
        "full_name", "document_kind", "authority", "key_areas", "legislation",
        "document", "sector", "sector_name", "document_type",
    ],
)

CHAT_BASE_PROMPT = (
    "You are the Kwooka Compliance Copilot, an expert AI assistant specialising in Australian "
    "regulatory compliance. You work for Kwooka Health Services Ltd, an Aboriginal-owned enterprise "
    "(Supply Nation certified) based in Western Australia.\n\n"
    "CORE PRINCIPLES:\n"
    "1. Accuracy First: Only provide information you're confident about. If uncertain, say so.\n"
    "2. Australian Focus: All advice relates to Australian (particularly WA) legislation.\n"
    "3. Practical Guidance: Provide actionable, step-by-step guidance.\n"
    "4. Citation: Always reference specific legislation when making compliance statements.\n"
    "5. Risk-Based: Categorise issues by risk level (Critical, High, Medium, Low).\n\n"
    "RESPONSE FORMAT:\n"
    "- Use clear headings and bullet points\n"
    "- Include relevant regulation references\n"
    "- Provide specific deadlines where applicable\n"
    "- Suggest next steps or actions"
)

CHAT_SECTOR_BLOCK = (
    "\n\nCURRENT FOCUS: {full_name}\n\n"
    "KEY REGULATIONS:\n{regulations}\n\n"
    "REGULATORY AUTHORITIES:\n{authorities}\n\n"
    "KEY COMPLIANCE AREAS:\n{key_areas}"
)


def _bullets(items) -> str:
    return "\n".join(f"- {x}" for x in items)


def _passage_header(p: LegislationPassage) -> str:
    head = p.title
    if p.section_number:
        head += f" - Section {p.section_number}"
    if p.section_title:
        head += f" ({p.section_title})"
    return head


def format_legislation_context(passages: list[LegislationPassage], heading: str = "RELEVANT LEGISLATION FROM DATABASE") -> str:
    if not passages:
        return ""
    blocks = [f"[{i}] {_passage_header(p)}\n{p.content}" for i, p in enumerate(passages, start=1)]
    return f"\n\n{heading}:\n" + "\n\n---\n\n".join(blocks)


def truncate_document(text: str, limit: int | None = None) -> str:
    limit = settings.max_document_chars if limit is None else limit
    return text[:limit]


def build_analysis_prompt(
    document_text: str,
    sector: str,
    sector_config: SectorConfig,
    document_type: str | None = None,
    legislation_context: str = "",
    max_chars: int | None = None,
) -> str:
    return _analysis_prompt.format(
        full_name=sector_config.full_name,
        document_kind=document_type or "policy",
        authority=sector_config.authority,
        key_areas="\n".join(f"{i}. {area}" for i, area in enumerate(sector_config.key_areas, start=1)),
        legislation=legislation_context,
        document=truncate_document(document_text, max_chars),
        sector=sector,
        sector_name=sector_config.name,
        document_type=document_type or DEFAULT_DOCUMENT_TYPE,
    )


def build_chat_system_prompt(sector: str | None = None) -> str:
    cfg = get_sector_config(sector)
    if cfg is None:
        return CHAT_BASE_PROMPT
    return CHAT_BASE_PROMPT + CHAT_SECTOR_BLOCK.format(
        full_name=cfg.full_name,
        regulations=_bullets(cfg.regulations),
        authorities=_bullets(cfg.authorities),
        key_areas=_bullets(cfg.key_areas),
    )


POLICY_SYSTEM_PROMPT = "You are an expert Australian compliance policy writer."

POLICY_TEMPLATE = (
    "You are a compliance policy writer for Australian {sector_name} providers.\n\n"
    "Write a comprehensive {policy_type} policy{company}.\n"
    "{standard}\n"
    "{legislation}\n\n"
    "The policy must:\n"
    "1. Be compliant with {authority} requirements\n"
    "2. Reference specific regulations: {regulations}\n"
    "3. Be practical and implementable\n"
    "4. Include clear responsibilities and timeframes\n\n"
    "Format with these sections:\n"
    "1. PURPOSE - Why this policy exists\n"
    "2. SCOPE - Who and what it applies to\n"
    "3. POLICY STATEMENT - The key commitments\n"
    "4. PROCEDURES - Step-by-step processes\n"
    "5. RESPONSIBILITIES - Who does what\n"
    "6. RELATED DOCUMENTS - Links to other policies\n"
    "7. REVIEW - When and how to review\n\n"
    "Write in professional Australian English."
)

_policy_prompt = PromptTemplate(
    input_variables=["sector_name", "policy_type", "company", "standard", "legislation", "authority", "regulations"],
    template=POLICY_TEMPLATE,
)


def format_policy_requirements(passages: list[LegislationPassage], authority: str) -> str:
    """Requirement block for the policy writer; one paragraph per passage, no numbering."""
    if not passages:
        return ""
    lines = [
        f"{p.title}{f' - Section {p.section_number}' if p.section_number else ''}: {p.content}"
        for p in passages
    ]
    return f"\n\nRELEVANT REQUIREMENTS FROM {authority.upper()}:\n" + "\n\n".join(lines)


def build_policy_prompt(
    policy_type: str,
    sector_config: SectorConfig,
    company_name: str | None = None,
    company_type: str | None = None,
    standard_number: str | None = None,
    legislation_context: str = "",
) -> str:
    company = ""
    if company_name:
        company = f" for {company_name} ({company_type or sector_config.name + ' Provider'})"
    standard = f"This relates to {sector_config.authority} Standard #{standard_number}." if standard_number else ""
    return _policy_prompt.format(
        sector_name=sector_config.name,
        policy_type=policy_type,
        company=company,
        standard=standard,
        legislation=legislation_context,
        authority=sector_config.authority,
        regulations=", ".join(sector_config.regulations[:3]),
    )
