from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SectorConfig:
    id: str
    name: str
    full_name: str
    authority: str
    key_areas: tuple[str, ...]
    regulations: tuple[str, ...]
    authorities: tuple[str, ...]
    suggested_prompts: tuple[str, ...] = ()


SECTORS: dict[str, SectorConfig] = {
    "ndis": SectorConfig(
        id="ndis",
        name="NDIS",
        full_name="NDIS Practice Standards",
        authority="NDIS Quality and Safeguards Commission",
        key_areas=(
            "Rights and Responsibilities",
            "Governance and Operational Management",
            "Provision of Supports",
            "Support Provision Environment",
            "Worker Screening",
            "Incident Management",
            "Complaints Management",
            "Restrictive Practices",
        ),
        regulations=(
            "NDIS Act 2013",
            "NDIS Practice Standards",
            "NDIS Code of Conduct",
            "NDIS Quality and Safeguards Framework",
            "Worker Screening Requirements",
        ),
        authorities=("NDIS Quality and Safeguards Commission", "NDIA"),
        suggested_prompts=(
            "What are the NDIS Practice Standards?",
            "Explain worker screening requirements",
            "What are reportable incidents under NDIS?",
            "How do I manage restrictive practices?",
        ),
    ),
    "transport": SectorConfig(
        id="transport",
        name="Transport",
        full_name="Heavy Vehicle National Law (HVNL)",
        authority="National Heavy Vehicle Regulator (NHVR)",
        key_areas=(
            "Chain of Responsibility",
            "Fatigue Management",
            "Speed Compliance",
            "Mass & Loading",
            "Vehicle Standards",
            "Driver Competency",
            "Journey Management",
            "Record Keeping",
        ),
        regulations=(
            "Heavy Vehicle National Law (HVNL)",
            "Chain of Responsibility (CoR)",
            "Fatigue Management Standards",
            "Work Diary Requirements",
            "Mass, Dimension and Loading Requirements",
            "National Heavy Vehicle Accreditation Scheme (NHVAS)",
        ),
        authorities=("National Heavy Vehicle Regulator (NHVR)", "Main Roads WA", "Transport WA"),
        suggested_prompts=(
            "Explain driver fatigue management requirements",
            "What are my CoR obligations as a consignor?",
            "How do I maintain NHVAS accreditation?",
            "What records must I keep for work diaries?",
        ),
    ),
    "healthcare": SectorConfig(
        id="healthcare",
        name="Healthcare",
        full_name="National Safety and Quality Health Service Standards",
        authority="Australian Commission on Safety and Quality in Health Care",
        key_areas=(
            "Clinical Governance",
            "Partnering with Consumers",
            "Infection Prevention",
            "Medication Safety",
            "Patient Identification",
            "Clinical Handover",
            "Blood Management",
            "Recognising Deterioration",
        ),
        regulations=(
            "Health Practitioner Regulation National Law",
            "Australian Health Service Safety and Quality Standards",
            "Private Health Facilities Act",
            "Medicines and Poisons Act",
        ),
        authorities=(
            "AHPRA",
            "Australian Commission on Safety and Quality in Health Care",
            "WA Department of Health",
        ),
        suggested_prompts=(
            "What clinical governance requirements apply?",
            "How do I manage medication compliance?",
            "Explain infection control standards",
            "What patient safety incidents must be reported?",
        ),
    ),
    "aged_care": SectorConfig(
        id="aged_care",
        name="Aged Care",
        full_name="Aged Care Quality Standards",
        authority="Aged Care Quality and Safety Commission",
        key_areas=(
            "Consumer Dignity and Choice",
            "Ongoing Assessment and Planning",
            "Personal Care and Clinical Care",
            "Services and Supports",
            "Organisation Service Environment",
            "Feedback and Complaints",
            "Human Resources",
            "Organisational Governance",
        ),
        regulations=(
            "Aged Care Act 1997",
            "Aged Care Quality Standards",
            "Serious Incident Response Scheme (SIRS)",
        ),
        authorities=("Aged Care Quality and Safety Commission", "Department of Health and Aged Care"),
        suggested_prompts=(
            "Explain the 8 Aged Care Quality Standards",
            "What incidents must be reported to SIRS?",
            "What are the care minute requirements?",
            "How do I manage restraint compliance?",
        ),
    ),
    "workplace": SectorConfig(
        id="workplace",
        name="Workplace Safety",
        full_name="Work Health and Safety Act & Regulations",
        authority="WorkSafe / SafeWork Australia",
        key_areas=(
            "PCBU Duties",
            "Risk Management",
            "Consultation",
            "Training & Competency",
            "Incident Notification",
            "Hazardous Work",
            "Emergency Procedures",
            "Worker Health Monitoring",
        ),
        regulations=(
            "Work Health and Safety Act 2020 (WA)",
            "WHS Regulations",
            "Codes of Practice",
            "Fair Work Act",
        ),
        authorities=("WorkSafe WA", "Fair Work Commission", "Fair Work Ombudsman"),
        suggested_prompts=(
            "What are PCBU duties under WHS?",
            "How do I conduct a risk assessment?",
            "What incidents must be notified to WorkSafe?",
            "Explain psychosocial hazard requirements",
        ),
    ),
    "construction": SectorConfig(
        id="construction",
        name="Construction",
        full_name="WHS Regulations - Construction Work",
        authority="WorkSafe",
        key_areas=(
            "Safe Work Method Statements",
            "Principal Contractor Duties",
            "High Risk Work Licensing",
            "Working at Heights",
            "Excavation Safety",
            "Asbestos Management",
            "Electrical Safety",
            "Plant & Equipment",
        ),
        regulations=(
            "WHS Regulations - Construction Work",
            "Building Act 2011 (WA)",
            "High Risk Work Licensing",
        ),
        authorities=("WorkSafe WA", "Building and Energy WA"),
        suggested_prompts=(
            "When do I need a SWMS?",
            "What are principal contractor obligations?",
            "Explain high risk work licensing",
            "What asbestos requirements apply?",
        ),
    ),
}

SECTOR_IDS: list[str] = list(SECTORS)


def is_valid_sector(value: object) -> bool:
    return isinstance(value, str) and value in SECTORS


def get_sector_config(value: str | None) -> SectorConfig | None:
    if not is_valid_sector(value):
        return None
    return SECTORS[value]
