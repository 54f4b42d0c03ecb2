from prometheus_client import Counter, Histogram

FEATURE_EVALUATIONS = Counter(
    "pennant_feature_evaluations_total",
    "Feature flag evaluations",
    ["flag", "outcome"],
)
FEATURE_EVALUATION_LATENCY = Histogram(
    "pennant_feature_evaluation_seconds",
    "Latency of feature flag evaluations",
    ["flag"],
    buckets=[0.0005,0.001,0.005,0.01,0.025,0.05,0.1,0.25,0.5,1],
)
