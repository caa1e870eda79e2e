"""
Human-readable capability reports.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..models.data_models import CapabilitySnapshot, PermissionState


@dataclass
class FeatureStatus:
    available: bool
    description: str


@dataclass
class CapabilityReport:
    """Summary of what voice features can do on this platform."""
    title: str
    description: str
    status: str  # full, partial, limited or none
    features: Dict[str, FeatureStatus] = field(default_factory=dict)
    setup_instructions: List[str] = field(default_factory=list)
    limitations: List[str] = field(default_factory=list)
    technical: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': {
                'title': self.title,
                'description': self.description,
                'status': self.status,
            },
            'features': {
                name: {'available': f.available, 'description': f.description}
                for name, f in self.features.items()
            },
            'recommendations': {
                'setup': list(self.setup_instructions),
                'limitations': list(self.limitations),
            },
            'technical': dict(self.technical),
        }


SUMMARIES = {
    'full': ('Full Voice Support Available', 'All voice features are supported and ready to use'),
    'partial': ('Partial Voice Support', 'Voice features available with some limitations'),
    'limited': ('Limited Voice Support', 'Spoken replies work, but speech input is unavailable'),
    'none': ('Voice Features Not Available', 'This environment does not support voice features'),
}


def overall_support(snapshot: CapabilitySnapshot) -> str:
    if snapshot.can_use_voice_mode:
        if snapshot.microphone_permission == PermissionState.GRANTED:
            return 'full'
        return 'partial'
    if snapshot.can_use_synthesis:
        return 'limited'
    return 'none'


def setup_instructions(snapshot: CapabilitySnapshot) -> List[str]:
    instructions = []
    if not snapshot.secure_context:
        instructions.append('Access the app over a secure connection (HTTPS)')
    if snapshot.microphone_permission == PermissionState.DENIED:
        instructions.append('Enable microphone permission in your settings')
    elif snapshot.microphone_permission == PermissionState.PROMPT:
        instructions.append('Grant microphone permission when prompted')
    if not snapshot.recognition_supported:
        instructions.append('Use an environment with speech recognition support')
    if not snapshot.synthesis_supported:
        instructions.append('Use an environment with text-to-speech support')
    return instructions


def limitations(snapshot: CapabilitySnapshot) -> List[str]:
    found = [str(item) for item in snapshot.platform.get('limitations', ())]
    if not snapshot.secure_context:
        found.append('Requires HTTPS connection')
    if snapshot.microphone_permission == PermissionState.DENIED:
        found.append('Microphone access denied')
    if snapshot.synthesis_supported and snapshot.voice_count == 0:
        found.append('No synthesis voices installed yet')
    return found


def build_report(snapshot: CapabilitySnapshot) -> CapabilityReport:
    status = overall_support(snapshot)
    title, description = SUMMARIES[status]

    features = {
        'speech_recognition': FeatureStatus(
            snapshot.can_use_recognition,
            'Speech recognition available' if snapshot.can_use_recognition
            else 'Speech recognition not available here',
        ),
        'text_to_speech': FeatureStatus(
            snapshot.can_use_synthesis,
            f'Text-to-speech available with {snapshot.voice_count} voices' if snapshot.can_use_synthesis
            else 'Text-to-speech not available here',
        ),
        'voice_mode': FeatureStatus(
            snapshot.can_use_voice_mode,
            'Full voice mode available' if snapshot.can_use_voice_mode
            else 'Voice mode not available - missing required features',
        ),
    }

    platform_name = snapshot.platform.get('name', 'unknown platform')
    form_factor = 'Mobile' if snapshot.platform.get('mobile') else 'Desktop'

    return CapabilityReport(
        title=title,
        description=description,
        status=status,
        features=features,
        setup_instructions=setup_instructions(snapshot),
        limitations=limitations(snapshot),
        technical={
            'platform': f"{platform_name} on {form_factor}",
            'secure_context': snapshot.secure_context,
            'microphone_permission': snapshot.microphone_permission.value,
            'readiness_level': snapshot.readiness_level,
        },
    )
