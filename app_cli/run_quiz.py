from __future__ import annotations
import argparse, json, logging, sys
from quiz_core.config import QUESTION_COUNTS, QUIZ_MODES, load_config, make_rng
from quiz_core.session import QuizConfig, QuizSession
from quiz_core.study_set import load_study_set, study_set_to_dict
from quiz_core.summary import score_band
def ask(prompt: str, options) -> int:
    print(prompt)
    for i,opt in enumerate(options): print(f"  [{i}] {opt}")
    while True:
        v = input("Your choice (index, q to stop): ").strip()
        if v.lower() == "q": return -1
        if v.isdigit() and int(v) < len(options): return int(v)
        print(f"Enter a number between 0 and {len(options) - 1}.")
def main(argv=None):
    ap = argparse.ArgumentParser(description="Terminal quiz over a study-set JSON file")
    ap.add_argument("study_set")
    ap.add_argument("--mode", choices=QUIZ_MODES)
    ap.add_argument("--count", type=int, choices=QUESTION_COUNTS)
    ap.add_argument("--topics", nargs="*", default=[])
    ap.add_argument("--recall", action="store_true", help="re-ask missed questions later in the run")
    ap.add_argument("--save", action="store_true", help="write updated mastery back to the study-set file")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="[%(levelname)s] %(message)s")
    cfg = load_config()
    ss = load_study_set(args.study_set)
    config = QuizConfig.from_cfg(cfg, selected_topic_ids=args.topics, question_count=args.count,
                                 mode=args.mode, active_recall=(True if args.recall else None))
    session = QuizSession(ss, config, rng=make_rng(cfg))
    if not session.queue:
        print("No questions available for the selected topics."); return 1
    print(f"BrainBlitz quiz: {session.original_question_count} of {session.available_count} questions, mode={config.mode}")
    while True:
        q = session.next_question()
        if q is None: break
        head = f"[{q.topic_name} / {q.concept_name} - {q.mastery_level.value}]"
        if q.appearance_count: head += f" (retry {q.appearance_count})"
        v = ask(f"{head}\n{q.text}", q.options)
        if v < 0: session.stop(); break
        out = session.answer_current(v)
        print("Correct!" if out.record.is_correct else f"Wrong. Answer: [{out.correct_option_index}] {q.options[out.correct_option_index]}")
        if out.explanation: print(f"  {out.explanation}")
        if out.mastery_after and out.mastery_before and out.mastery_after.level != out.mastery_before.level:
            print(f"  Mastery: {out.mastery_before.level.value} -> {out.mastery_after.level.value}")
    res = session.finalize()
    print(f"\nScore: {res.score_percent}% ({res.correct_first_try}/{res.total_questions} first try) - {score_band(res.score_percent)}")
    for label, rows in (("Improved", res.concepts_improved), ("Decreased", res.concepts_decreased), ("Still weak", res.concepts_still_weak)):
        for r in rows: print(f"  {label}: {r.concept_name} ({r.mastery_before.value} -> {r.mastery_after.value})")
    if args.save:
        with open(args.study_set, "w", encoding="utf-8") as f:
            json.dump(study_set_to_dict(session.study_set), f, indent=2)
        print(f"Mastery saved to: {args.study_set}")
    return 0
if __name__ == "__main__": sys.exit(main())
