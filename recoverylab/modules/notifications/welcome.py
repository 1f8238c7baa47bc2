import asyncio
import logging
from recoverylab.modules.contacts.schemas import ContactOut
from recoverylab.platform.provider_registry import Providers

logger = logging.getLogger(__name__)

ROLE_TEMPLATES = {
    "family": {
        "subject": "Welcome to RecoveryLab - Stay Connected to Your Loved One's Recovery",
        "greeting": "Dear {name},",
        "intro": "You've been added as a family contact on RecoveryLab, a gait analysis and recovery platform.",
        "body": [
            "Analysis results when a new gait analysis is completed",
            "Weekly summaries with progress updates and recovery milestones",
            "Health alerts that may need your attention",
        ],
    },
    "doctor": {
        "subject": "RecoveryLab Provider Access - New Patient Monitoring",
        "greeting": "Dr. {name},",
        "intro": "You've been added as a healthcare provider on RecoveryLab for one of your patients.",
        "body": [
            "Detailed medical reports with clinical gait metrics",
            "Weekly summaries and improvement trends",
            "Automatic flags for concerning symptoms or abnormal patterns",
        ],
    },
    "physical_therapist": {
        "subject": "RecoveryLab Therapist Portal - New Patient Added",
        "greeting": "Hello {name},",
        "intro": "You've been added as a physical therapist on RecoveryLab for one of your patients.",
        "body": [
            "Gait analysis reports with biomechanical assessments",
            "Exercise completion tracking",
            "Progress milestones and recovery goals",
        ],
    },
    "insurance_provider": {
        "subject": "RecoveryLab Insurance Portal Access Granted",
        "greeting": "Dear {name},",
        "intro": "You've been granted access to RecoveryLab updates for claims documentation and case management.",
        "body": [
            "Weekly treatment progress summaries",
            "Treatment milestones that may affect coverage",
        ],
    },
    "caregiver": {
        "subject": "RecoveryLab Caregiver Access - Patient Updates",
        "greeting": "Hello {name},",
        "intro": "You've been added as a caregiver on RecoveryLab to help monitor a patient's recovery.",
        "body": [
            "Exercise completion and activity levels",
            "Alerts that may require caregiver assistance",
            "Weekly recovery summaries and milestones",
        ],
    },
    "other": {
        "subject": "Welcome to RecoveryLab Updates",
        "greeting": "Hello {name},",
        "intro": "You've been added to receive updates from RecoveryLab.",
        "body": [
            "Analysis results and progress updates",
            "Weekly recovery summaries",
            "Important health alerts",
        ],
    },
}

TYPE_LABELS = {
    "analysis_update": "New analysis results",
    "weekly_summary": "Weekly summaries",
    "doctor_flag": "Health alerts",
    "progress_milestone": "Progress milestones",
    "exercise_completion": "Exercise completion",
    "medical_report": "Medical reports",
    "insurance_update": "Insurance updates",
    "appointment_reminder": "Appointment reminders",
}

FREQUENCY_LABELS = {"realtime": "Real-time", "daily_digest": "Daily digest", "weekly_digest": "Weekly digest"}

def welcome_message(contact: ContactOut) -> tuple[str, str]:
    t = ROLE_TEMPLATES.get(contact.role, ROLE_TEMPLATES["other"])
    lines = [t["greeting"].format(name=contact.name), "", t["intro"], "", "You'll receive:"]
    lines += [f"- {item}" for item in t["body"]]
    if contact.role in ("doctor", "physical_therapist", "insurance_provider") and contact.organization:
        lines.append(f"Organization: {contact.organization}")
    if contact.role == "doctor" and contact.license_number:
        lines.append(f"License: {contact.license_number}")
    enabled = [TYPE_LABELS[k] for k, on in contact.notifications.items() if on and k in TYPE_LABELS]
    if enabled:
        lines += ["", "Notification preferences:"] + [f"- {label}" for label in enabled]
    lines += [
        "",
        f"Delivery: {FREQUENCY_LABELS.get(contact.preferences.frequency, contact.preferences.frequency)}",
        "",
        "---",
        "RecoveryLab | Advanced Gait Analysis",
        "You're receiving this email because you were added as a contact.",
    ]
    return t["subject"], "\n".join(lines)

async def send_welcome(providers: Providers, contact: ContactOut) -> bool:
    subject, body = welcome_message(contact)
    try:
        await asyncio.wait_for(providers.email.send_email(contact.email, subject, body), timeout=providers.timeout_seconds)
    except Exception as e:
        logger.error(f"Failed to send welcome email to contact {contact.id}: {str(e) or e.__class__.__name__}")
        return False
    logger.info(f"Welcome email sent to contact {contact.id}")
    return True
