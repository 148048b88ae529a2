# tests/test_scoring.py
import pytest

from scout_engine.config.settings import MODEL_VERSION
from scout_engine.exceptions import ScoringConfigurationError
from scout_engine.models.schemas import Bucket, FeatureVector, ObjectionSignals, WeightVector
from scout_engine.stages.stage4_scoring import ScoringModel
from scout_engine.stages.stage5_explanations import ExplanationStage


@pytest.fixture
def model():
    return ScoringModel()


@pytest.fixture
def scenario_features():
    return FeatureVector(
        engagement=80,
        business_interest=75,
        pain_point=85,
        life_event=0,
        responsiveness=62,
        leadership=0,
        relationship=30,
    )


def test_weighted_score_and_bucket(model, scenario_features, default_weights):
    result = model.process(scenario_features, default_weights)
    assert result.score == 53
    assert result.bucket == Bucket.WARM


@pytest.mark.parametrize("score, bucket", [
    (100, Bucket.HOT),
    (80, Bucket.HOT),
    (79, Bucket.WARM),
    (50, Bucket.WARM),
    (49, Bucket.COLD),
    (0, Bucket.COLD),
])
def test_bucket_boundaries(model, score, bucket):
    assert model.classify_bucket(score) == bucket


def test_score_stays_in_range(model, default_weights):
    top = FeatureVector(**{name: 100 for name in default_weights.as_dict()})
    assert model.process(top, default_weights).score == 100
    assert model.process(FeatureVector(), default_weights).score == 0


def test_scoring_is_deterministic(model, scenario_features, default_weights):
    first = model.process(scenario_features, default_weights)
    second = model.process(scenario_features, default_weights)
    assert first == second


def test_unnormalized_weights_rejected(model, scenario_features):
    with pytest.raises(ScoringConfigurationError):
        model.process(scenario_features, WeightVector(engagement=0.5))


def test_negative_weights_rejected(model, scenario_features):
    weights = WeightVector.model_construct(engagement=-0.1)
    with pytest.raises(ScoringConfigurationError) as exc:
        model.process(scenario_features, weights)
    assert "engagement" in str(exc.value)


def test_invalid_thresholds_rejected():
    with pytest.raises(ScoringConfigurationError):
        ScoringModel({"hot": 50, "warm": 80})


def test_confidence_and_top_features(model, scenario_features, default_weights):
    assert model.confidence(scenario_features) == 0.62

    top = model.top_features(scenario_features, default_weights)
    assert [f.name for f in top] == ["pain_point", "business_interest", "engagement"]
    assert top[0].contribution == pytest.approx(15.3)


def test_objections_drive_intent_likelihood_and_cta(model, scenario_features):
    signals = model.objection_signals(["budget", "spouse"])

    assert signals.count() == 2
    assert model.intent_signal(scenario_features, signals) == "budget_concern"
    assert model.conversion_likelihood(53, signals) == 18
    assert model.recommended_cta(Bucket.WARM, signals) == "address_price_concerns"
    assert model.conversion_likelihood(10, model.objection_signals(["budget", "timing", "spouse"])) == 0


def test_cta_without_objections(model):
    none = ObjectionSignals()
    assert model.recommended_cta(Bucket.HOT, none) == "direct_close_offer"
    assert model.recommended_cta(Bucket.WARM, none) == "nurture_sequence"
    assert model.recommended_cta(Bucket.COLD, none) == "build_rapport"


def test_intent_without_objections(model, scenario_features):
    assert model.intent_signal(scenario_features, ObjectionSignals()) == "high_business_interest"
    assert model.intent_signal(FeatureVector(), ObjectionSignals()) == "general_interest"


def test_build_record(model, scenario_features, default_weights):
    record = model.build_record(
        "p-1", "u-1", scenario_features, default_weights, ["Clear pain points identified"],
        scan_id="scan-1", prospect_name="Juan Dela Cruz",
    )

    assert record.score == 53
    assert record.bucket == Bucket.WARM
    assert record.model_version == MODEL_VERSION
    assert record.scan_id == "scan-1"
    assert record.prospect_name == "Juan Dela Cruz"
    assert record.recommended_cta == "nurture_sequence"
    assert record.conversion_likelihood == 53


def test_half_scores_round_up(model):
    weights = WeightVector(
        engagement=1.0, business_interest=0, pain_point=0, life_event=0,
        responsiveness=0, leadership=0, relationship=0,
    )
    assert model.process(FeatureVector(engagement=60.5), weights).score == 61
    assert model.process(FeatureVector(engagement=79.5), weights).bucket == Bucket.HOT
    assert model.process(FeatureVector(engagement=60.49), weights).score == 60


def test_record_round_trip_includes_tags(model, scenario_features, default_weights):
    explainer = ExplanationStage()

    first = model.build_record("p-1", "u-1", scenario_features, default_weights,
                               explainer.process(scenario_features))
    second = model.build_record("p-1", "u-1", scenario_features, default_weights,
                                explainer.process(scenario_features))

    assert (first.score, first.bucket, first.explanation_tags) == (
        second.score, second.bucket, second.explanation_tags,
    )
    assert first.explanation_tags
