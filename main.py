"""websearch - search the web and summarize the results with a local model.

Simple CLI for running one query.
"""

import argparse
import asyncio
import sys

from websearch.agents.orchestrator import WebSearchPipeline
from websearch.config import OUTPUT_FORMATS, VERSION, Settings, load_settings
from websearch.errors import ConfigError
from websearch.services.logger import configure_logging
from websearch.services.metrics import RetrievalMetrics, format_metrics
from websearch.services.report_writer import detect_format, render_report, write_report

EPILOG = """\
examples:
  websearch "what is quantum computing"
  websearch -m llama3.2:3b -r 8 "rust vs go for web services"
  websearch -f json -o results.json "climate change"
  websearch -s report.md "history of the transistor"

environment:
  SEARCH_URL, OLLAMA_HOST, OLLAMA_MODEL, MAX_RESULTS, TIMEOUT,
  OUTPUT_FORMAT, LOG_LEVEL, CACHE_ENABLED, FALLBACK_MODELS
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="websearch",
        description="Search the web and summarize the results with a local Ollama model",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("words", nargs="*", help="Search query")
    parser.add_argument("--query", "-q", help="Search query (alternative to positional words)")
    parser.add_argument("--model", "-m", help="Model to try first (default: from config)")
    parser.add_argument("--results", "-r", type=int, help="Number of search results to use (1-20)")
    parser.add_argument("--output", "-o", help="Write the report to this file")
    parser.add_argument("--save", "-s", help="Same as --output; format is taken from the file extension")
    parser.add_argument("--format", "-f", choices=OUTPUT_FORMATS, help="Output format")
    parser.add_argument("--timeout", type=int, help="Network timeout in milliseconds")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--no-cache", action="store_true", help="Disable the page cache")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


async def run_search(query: str, settings: Settings, fmt: str, output_path: str | None = None) -> int:
    """Run the pipeline, printing progress, and return the process exit code."""
    stream_answer = fmt == "console" and output_path is None
    out = sys.stdout if stream_answer else sys.stderr
    pipeline = WebSearchPipeline(settings)
    result = None

    async for event in pipeline.run(query):
        event_type = event.event.value
        data = event.data

        if event_type == "search_started":
            print(f"[*] Searching for: {data.get('query')}", file=out)

        elif event_type == "search_completed":
            print(f"  [+] {data.get('count')} eligible results ({data.get('duration_ms')}ms)", file=out)

        elif event_type == "fetch_started":
            print(f"\n[~] Fetching {data.get('url_count')} pages...", file=out)

        elif event_type == "document_fetched":
            cached = " (cached)" if data.get("from_cache") else ""
            print(f"  [+] {data.get('url')} - {data.get('length')} chars{cached}", file=out)

        elif event_type == "fetch_completed":
            print(f"  [+] {data.get('successful')}/{data.get('attempted')} pages retrieved", file=out)

        elif event_type == "summary_started":
            print(f"\n[+] Generating answer with {data.get('model_chain', ['?'])[0]}...\n", file=out)

        elif event_type == "model_failed":
            print(f"  [!] Model {data.get('model')} failed: {data.get('error')}", file=out)

        elif event_type == "answer_chunk":
            if stream_answer:
                print(data.get("text", ""), end="", flush=True)

        elif event_type == "run_complete":
            result = data.get("result")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}", file=sys.stderr)

    if result is None:
        return 1

    if stream_answer:
        print()
        if result.message:
            print(f"\n{result.message}")
        print(f"\n{format_metrics(RetrievalMetrics(**result.metrics))}")
    elif output_path:
        path = write_report(result, output_path, fmt)
        print(f"\n[*] Results saved to: {path}", file=out)
    else:
        print(render_report(result, fmt))

    return 0 if result.succeeded else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    query = args.query or " ".join(args.words)
    if not query.strip():
        parser.error("a search query is required")

    try:
        settings = load_settings(
            args.config,
            ollama_model=args.model,
            max_results=args.results,
            timeout=args.timeout,
            output_format=args.format,
            cache_enabled=False if args.no_cache else None,
            log_level="DEBUG" if args.verbose else None,
        )
    except ConfigError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, log_dir=settings.log_dir, noisy_level=settings.noisy_log_level)

    output_path = args.output or args.save
    fmt = args.format or (detect_format(output_path) if output_path else None) or settings.output_format

    try:
        return asyncio.run(run_search(query, settings, fmt, output_path))
    except KeyboardInterrupt:
        print("\n[!] Interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
