from typing import Optional

LOW_ACCURACY = 50


def recommend_complexity(levels: Optional[dict], user_accuracy: Optional[float]) -> str:
    """Suggest easy/medium/hard from a learner's past accuracy and the template's targets."""
    if not user_accuracy or not levels:
        return "medium"
    easy = levels.get("easy") or {}
    medium = levels.get("medium") or {}
    if "targetAccuracy" in easy and user_accuracy >= easy["targetAccuracy"]:
        return "medium"
    if "targetAccuracy" in medium and user_accuracy >= medium["targetAccuracy"]:
        return "hard"
    if user_accuracy < LOW_ACCURACY:
        return "easy"
    return "medium"
