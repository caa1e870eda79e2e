"""
Tests for filler classification, acceptance policy and the recognition error taxonomy.
"""

import pytest

from coach_voice.models.data_models import Classification, ErrorCategory, RecognitionAlternative
from coach_voice.recognition.errors import build_recognition_error
from coach_voice.recognition.filler import (
    AcceptancePolicy,
    FillerClassifier,
    get_filler_preset,
)


class TestFillerClassifier:

    @pytest.fixture
    def classifier(self):
        return FillerClassifier()

    @pytest.mark.parametrize("transcript", ["uh", "Um", "uh um", "hmm...", " mhm ", "uh-huh"])
    def test_fillers(self, classifier, transcript):
        assert classifier.is_filler(transcript)

    @pytest.mark.parametrize("transcript", ["", "   ", "uh I think", "umbrella", "the"])
    def test_not_fillers(self, classifier, transcript):
        assert not classifier.is_filler(transcript)

    def test_disabled_classifier_never_flags_fillers(self):
        classifier = FillerClassifier(enabled=False)
        assert classifier.classify("um") == Classification.NORMAL

    def test_select_prefers_filler_alternative(self, classifier):
        alternatives = [RecognitionAlternative("them", 0.8), RecognitionAlternative("um", 0.3)]

        alternative, classification = classifier.select(alternatives)

        assert alternative.transcript == "um"
        assert classification == Classification.FILLER

    def test_select_highest_confidence_without_fillers(self, classifier):
        alternatives = [RecognitionAlternative("I led", 0.5), RecognitionAlternative("I lead", 0.7)]

        alternative, classification = classifier.select(alternatives)

        assert alternative.transcript == "I lead"
        assert classification == Classification.NORMAL

    def test_ties_go_to_first_ranked(self, classifier):
        alternatives = [RecognitionAlternative("first", 0.6), RecognitionAlternative("second", 0.6)]

        alternative, _ = classifier.select(alternatives)

        assert alternative.transcript == "first"

    def test_select_empty(self, classifier):
        assert classifier.select([]) is None


class TestAcceptancePolicy:

    def test_threshold_boundaries(self):
        policy = AcceptancePolicy()

        assert policy.accepts("uh", 0.4, Classification.FILLER)
        assert not policy.accepts("uh", 0.39, Classification.FILLER)
        assert policy.accepts("yes", 0.6, Classification.NORMAL)
        assert not policy.accepts("yes", 0.59, Classification.NORMAL)

    def test_min_length(self):
        policy = AcceptancePolicy(min_length=3)

        assert not policy.accepts(" ok ", 0.99, Classification.NORMAL)
        assert policy.accepts("okay", 0.99, Classification.NORMAL)

    def test_unscored(self):
        assert not AcceptancePolicy().accepts("hello", 0.0, Classification.NORMAL)
        assert AcceptancePolicy(accept_unscored=True).accepts("hello", 0.0, Classification.NORMAL)

    def test_filler_threshold_must_be_lower(self):
        with pytest.raises(ValueError):
            AcceptancePolicy(filler_threshold=0.6, normal_threshold=0.6)


class TestFillerPresets:

    def test_known_presets(self):
        assert get_filler_preset("sensitive").filler_threshold == 0.25
        assert get_filler_preset("STRICT").normal_threshold == 0.75
        assert get_filler_preset("disabled").detect_fillers is False

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown filler mode: loud"):
            get_filler_preset("loud")


class TestRecognitionErrors:

    @pytest.mark.parametrize("native, code, recoverable, category", [
        ("network", "network", True, ErrorCategory.NETWORK),
        ("not-allowed", "permission-denied", False, ErrorCategory.PERMISSION),
        ("no-speech", "no-speech", True, ErrorCategory.RUNTIME),
        ("audio-capture", "audio-capture", True, ErrorCategory.TEMPORARY),
        ("service-not-allowed", "service-unavailable", True, ErrorCategory.TEMPORARY),
        ("not-supported", "initialization-failure", False, ErrorCategory.INITIALIZATION),
        ("no-match", "no-match", True, ErrorCategory.RUNTIME),
    ])
    def test_taxonomy(self, native, code, recoverable, category):
        error = build_recognition_error(native)

        assert error.code == code
        assert error.recoverable is recoverable
        assert error.category == category
        assert error.message
        assert error.suggestion
        assert error.component == "recognition"

    def test_detail_goes_to_context(self):
        error = build_recognition_error("network", "socket closed", run_id=4)

        assert error.context == {'run_id': 4, 'detail': 'socket closed'}

    def test_unknown_code(self):
        error = build_recognition_error("language-not-supported")

        assert error.recoverable is False
        assert error.message == "Speech recognition error: language-not-supported"
