"""Lovsentralen - guided Norwegian legal information

Simple CLI for running one case analysis against the in-memory store.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from lovsentralen.agents.orchestrator import CaseAnalysisOrchestrator
from lovsentralen.models.interfaces import Evidence
from lovsentralen.services.memory_store import InMemoryCaseStore
from lovsentralen.services.report import render_text_report

CLI_USER = "cli"


async def run_case(facts: str, category: str | None, interactive: bool, export: str | None):
    """Create a case, answer its clarifying questions and run the analysis."""
    store = InMemoryCaseStore()
    orchestrator = CaseAnalysisOrchestrator(store)

    started = await orchestrator.start_case(CLI_USER, facts, category)
    case_id = started.case["id"]
    print(f"Case: {case_id}")
    print("-" * 50)

    if started.escalation_message:
        print(f"\n{started.escalation_message}\n")

    if started.clarifications:
        print(f"\n[?] Clarifying questions ({len(started.clarifications)}):")
        answers: dict[str, str] = {}
        for row in started.clarifications:
            print(f"  - {row['question']}")
            if interactive:
                answer = input("    > ").strip()
                if answer:
                    answers[row["id"]] = answer
        if answers:
            await store.answer_clarifications(case_id, answers)

    async for event in orchestrator.analyze(case_id):
        event_type = event.event.value
        data = event.data

        if event_type == "issues_extracted":
            issues = data.get("issues", [])
            print(f"\n[*] Legal issues ({len(issues)}):")
            for i, issue in enumerate(issues, 1):
                print(f"  {i}. {issue['issue']} ({issue['domain']})")

        elif event_type == "search_completed":
            print(f"\n[~] {data.get('queries_run')} queries, {data.get('results_count')} results")

        elif event_type == "pages_fetched":
            print(f"  [+] Parsed {data.get('parsed')}/{data.get('requested')} pages")

        elif event_type == "evidence_saved":
            print(f"  [+] {data.get('count')} evidence excerpts")

        elif event_type == "synthesis_started":
            print("\n[+] Synthesizing analysis...")

        elif event_type == "quality_pass_completed":
            status = "ok" if data.get("succeeded") else "skipped"
            print(f"  [+] {data.get('stage')}: {status}")

        elif event_type == "analysis_complete":
            print("\n[*] Analysis complete!")
            print(f"   Runtime: {data.get('runtime_ms')}ms")
            print(f"   Q&A items: {data.get('qa_count')}")
            print(f"   Sources: {len(data.get('sources', []))}")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")

    case = await store.get_case(case_id)
    result = await store.get_result(case_id)
    evidence = [Evidence.from_row(row) for row in await store.get_evidence(case_id)]
    report = render_text_report(case, result, evidence)
    if export:
        Path(export).write_text(report, encoding="utf-8")
        print(f"\nReport written to {export}")
    else:
        print(report)


def main():
    parser = argparse.ArgumentParser(description="Lovsentralen case analysis")
    parser.add_argument("--facts", "-f", help="Facts of the case (reads stdin when omitted)")
    parser.add_argument(
        "--category",
        "-c",
        choices=["forbrukerkjop", "husleie", "arbeidsrett", "personvern", "kontrakt", "erstatning"],
        help="Legal category",
    )
    parser.add_argument("--interactive", "-i", action="store_true", help="Answer clarifying questions")
    parser.add_argument("--export", "-o", help="Write the text report to this file")

    args = parser.parse_args()
    facts = (args.facts or sys.stdin.read()).strip()
    if len(facts) < 50:
        parser.error("facts must be at least 50 characters")

    asyncio.run(run_case(facts, args.category, args.interactive, args.export))


if __name__ == "__main__":
    main()
