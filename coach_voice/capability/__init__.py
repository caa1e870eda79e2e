"""
Environment capability assessment.
"""

from .assessor import CapabilityAssessor
from .report import CapabilityReport, build_report

__all__ = ['CapabilityAssessor', 'CapabilityReport', 'build_report']
