# Path: exporter/engine/reorganizer/classifier.py
"""
Artifact Classifier

Table-driven classification of exported artifacts.

Categories:
1. ArtifactKind - Canonical artifact kinds plus UNCLASSIFIED
2. PROVIDER_RULES - Manifest provider system name -> kind
3. FILENAME_RULES - File name substring -> kind (ordered)
"""

from enum import Enum
from typing import Optional


# ==============================================================================
# ARTIFACT KIND
# ==============================================================================

class ArtifactKind(Enum):
    """
    Canonical artifact kinds.

    PRIMARY: Work type definition (first one becomes the primary entity)
    UNCLASSIFIED: Matched no rule; retained, never dropped
    """
    PRIMARY = 'primary'
    FORM = 'form'
    WORKFLOW = 'workflow'
    BUSINESS_RULE = 'business_rule'
    APPROVAL = 'approval'
    OPTION_SET = 'option_set'
    PERMISSION = 'permission'
    TEMPLATE = 'template'
    PARTICIPANT_ROLE = 'participant_role'
    UNCLASSIFIED = 'unclassified'


# ==============================================================================
# RULE TABLES
# ==============================================================================

PROVIDER_RULES: dict[str, ArtifactKind] = {
    'sharedo-type': ArtifactKind.PRIMARY,
    'work-type': ArtifactKind.PRIMARY,
    'form-builder': ArtifactKind.FORM,
    'form': ArtifactKind.FORM,
    'execution-engine': ArtifactKind.WORKFLOW,
    'workflow': ArtifactKind.WORKFLOW,
    'business-rule': ArtifactKind.BUSINESS_RULE,
    'approval': ArtifactKind.APPROVAL,
    'option-set': ArtifactKind.OPTION_SET,
    'optionset': ArtifactKind.OPTION_SET,
    'permission': ArtifactKind.PERMISSION,
    'document-template': ArtifactKind.TEMPLATE,
    'template': ArtifactKind.TEMPLATE,
    'participant-role': ArtifactKind.PARTICIPANT_ROLE,
}

# First match wins
FILENAME_RULES: list[tuple[str, ArtifactKind]] = [
    ('sharedo-type-', ArtifactKind.PRIMARY),
    ('work-type-', ArtifactKind.PRIMARY),
    ('form-builder-', ArtifactKind.FORM),
    ('execution-engine-', ArtifactKind.WORKFLOW),
    ('business-rule-', ArtifactKind.BUSINESS_RULE),
    ('approval-', ArtifactKind.APPROVAL),
    ('option-set-', ArtifactKind.OPTION_SET),
    ('optionset-', ArtifactKind.OPTION_SET),
    ('document-template-', ArtifactKind.TEMPLATE),
    ('permission-', ArtifactKind.PERMISSION),
    ('participant-role-', ArtifactKind.PARTICIPANT_ROLE),
]

# ExtractedPackage list attribute per kind (PRIMARY handled separately)
BUCKET_FIELDS: dict[ArtifactKind, str] = {
    ArtifactKind.FORM: 'forms',
    ArtifactKind.WORKFLOW: 'workflows',
    ArtifactKind.BUSINESS_RULE: 'business_rules',
    ArtifactKind.APPROVAL: 'approvals',
    ArtifactKind.OPTION_SET: 'option_sets',
    ArtifactKind.PERMISSION: 'permissions',
    ArtifactKind.TEMPLATE: 'templates',
    ArtifactKind.PARTICIPANT_ROLE: 'participant_roles',
}


def classify_provider(provider_system_name: Optional[str]) -> ArtifactKind:
    """Kind for a manifest step's provider system name."""
    if not provider_system_name:
        return ArtifactKind.UNCLASSIFIED
    return PROVIDER_RULES.get(provider_system_name.strip().lower(), ArtifactKind.UNCLASSIFIED)


def classify_filename(filename: str) -> ArtifactKind:
    """Kind for a data file name."""
    lowered = filename.lower()
    for pattern, kind in FILENAME_RULES:
        if pattern in lowered:
            return kind
    return ArtifactKind.UNCLASSIFIED


__all__ = [
    'ArtifactKind',
    'PROVIDER_RULES',
    'FILENAME_RULES',
    'BUCKET_FIELDS',
    'classify_provider',
    'classify_filename',
]
