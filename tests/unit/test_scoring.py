from services.scoring import DEFAULT_QUESTIONS, Exchange, collect_stats, count_fillers, score_exchanges

DETAILED = (
    "In my last role I led the migration of our billing service to a new queue. "
    "I mapped the dependencies, planned a staged rollout and paired with the on-call team. "
    "The result was that we reduced failed payments by a third and delivered two weeks early."
)


def _scores(report):
    return [report.overallScore, report.pace, report.fillerWords, report.clarity, report.eyeContact, report.posture]


def test_count_fillers_counts_words_and_phrases():
    assert count_fillers("Um I mean it was like basically fine") == 4
    assert count_fillers("Clear and direct.") == 0


def test_collect_stats_skips_blank_answers():
    stats = collect_stats([Exchange("Q1", "One two three."), Exchange("Q2", "   ")])
    assert len(stats.answered) == 1
    assert stats.total_words == 3


def test_scoring_is_deterministic_and_bounded():
    exchanges = [Exchange("Tell me about a project.", DETAILED), Exchange("Why us?", "Um, like, I just, um, like it.")]
    first = score_exchanges(exchanges, job_title="Engineer", user_name="Ann")
    second = score_exchanges(exchanges, job_title="Engineer", user_name="Ann")
    assert first == second
    assert first.dataSource == "fallback_enhanced"
    assert all(0 <= score <= 100 for score in _scores(first))
    assert len(first.answerAnalysis) == 2
    assert first.recommendations


def test_detailed_answer_outscores_filler_answer():
    report = score_exchanges(
        [Exchange("Project?", DETAILED), Exchange("Why us?", "Um, like, I just, um, like it.")],
        job_title="Engineer",
        user_name="Ann",
    )
    detailed, filler = report.answerAnalysis
    assert detailed.score > filler.score
    assert "Connected the answer to a measurable result" in detailed.strengths
    assert any("filler" in item.lower() for item in filler.improvements)


def test_empty_transcript_uses_baseline_questions():
    report = score_exchanges([], job_title="Designer", user_name="")
    assert [item.question for item in report.answerAnalysis] == list(DEFAULT_QUESTIONS)
    assert "Not enough conversation data" in report.summary
    assert report.recommendations[0].startswith("Complete a full practice session")
