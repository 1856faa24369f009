from typing import Any, Dict, List, Mapping

from pinquiz.catalog import Question


def score_question(players: Mapping[str, Any], answers: Mapping[str, int], question: Question,
                   points: int) -> Dict[str, Dict[str, Any]]:
    """Apply scoring for the question that just closed.

    +``points`` to each player whose answer matches the correct index; a
    missing answer counts as incorrect. Returns the per-player breakdown
    sent with ``showResults``, keyed by connection id.
    """
    results = {}
    for sid, player in players.items():
        answer = answers.get(sid)
        is_correct = answer is not None and answer == question.correct_answer_index
        if is_correct:
            player.score += points
        results[sid] = {
            'name': player.name,
            'score': player.score,
            'isCorrect': is_correct,
            'answered': sid in answers,
            'answer': answer,
        }
    return results


def final_rankings(players: Mapping[str, Any]) -> List[Dict[str, Any]]:
    # sorted() is stable, so ties keep join order
    ranked = sorted(players.values(), key=lambda p: -p.score)
    return [{'name': p.name, 'score': p.score} for p in ranked]
