"""
Command-Line Interface for the News Chat System

Provides CLI commands for:
- Feed ingestion (all sources or a single source)
- Question answering, one-shot or as an interactive chat
- Store statistics and source listing
- Clearing stored articles
- Probing article extraction for a URL
"""

import sys
import argparse
import logging

from .main_pipeline import NewsChatSystem
from .models import QueryResult


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def print_result(result: QueryResult, show_sources: bool = True):
    """Print an answer and its sources."""
    print("Answer:")
    print(result.response_text)
    print()

    if show_sources and result.sources:
        print("Sources:")
        for i, article in enumerate(result.sources, 1):
            print(f"  [{i}] {article.title} ({article.source})")
            if article.url:
                print(f"      {article.url}")
        print()

    if result.from_cache:
        print("(cached response)")


def cmd_ingest(args):
    """Handle the ingest command."""
    system = NewsChatSystem(show_progress=True)

    if args.source:
        print(f"Ingesting source: {args.source}")
        try:
            stats = system.ingest_source(args.source)
        except KeyError:
            print(f"✗ Unknown source: {args.source}")
            print("  Run 'news-chat sources' to list configured sources")
            sys.exit(1)
    else:
        print(f"Ingesting {len(system.sources)} sources")
        stats = system.ingest_all()

    print(f"\n{'='*60}")
    print("Ingestion Summary:")
    print(f"  Articles collected: {stats.total_collected}")
    print(f"  Articles stored: {stats.total_stored}")
    print(f"  Sources processed: {stats.sources_processed}")
    print(f"  Sources failed: {stats.sources_failed}")
    print(f"  Items discarded: {stats.items_discarded}")
    print(f"  Duplicates dropped: {stats.duplicates_dropped}")
    print(f"  Categories: {', '.join(sorted(stats.categories)) or 'none'}")
    print(f"  Regions: {', '.join(sorted(stats.regions)) or 'none'}")
    print(f"  Processing time: {stats.duration:.2f}s")
    print(f"{'='*60}")


def cmd_ask(args):
    """Handle the ask command."""
    system = NewsChatSystem()

    print(f"Question: {args.question}")
    print()

    result = system.ask(args.question)
    print_result(result, show_sources=not args.no_sources)


def cmd_chat(args):
    """Handle the chat command."""
    system = NewsChatSystem()
    session_id = system.start_session()

    print("News chat - type 'exit' or 'quit' to leave, 'clear' to reset history")
    print()

    while True:
        try:
            question = input("You: ").strip()
        except EOFError:
            print()
            break

        if not question:
            continue
        if question.lower() in ('exit', 'quit'):
            break
        if question.lower() == 'clear':
            system.conversations.clear_session(session_id)
            print("History cleared.\n")
            continue

        result = system.ask(question, session_id=session_id)
        print()
        print_result(result, show_sources=not args.no_sources)


def cmd_stats(args):
    """Handle the stats command."""
    system = NewsChatSystem()

    stats = system.get_stats()

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"Total Articles: {stats['total_articles']}")
    print(f"Configured Sources: {stats['sources']}")
    print(f"Status: {stats['status']}")
    print()

    print("Vector Store:")
    vs_stats = stats['vector_store']
    print(f"  Dimension: {vs_stats.get('dimension', 'N/A')}")
    print(f"  Index Type: {vs_stats.get('index_type', 'N/A')}")
    print(f"  Metric: {vs_stats.get('metric', 'N/A')}")
    print(f"  Index Path: {vs_stats.get('index_path') or 'in memory'}")
    print("="*60)


def cmd_sources(args):
    """Handle the sources command."""
    system = NewsChatSystem()

    sources = system.list_sources()
    print(f"Found {len(sources)} configured source(s):\n")

    for source in sources:
        print(f"{source['name']} [{source['category']}, {source['region']}]")
        print(f"  {source['url']}")


def cmd_clear(args):
    """Handle the clear command."""
    if not args.yes:
        answer = input("Delete all stored articles? [y/N] ").strip().lower()
        if answer not in ('y', 'yes'):
            print("Aborted.")
            return

    system = NewsChatSystem()
    system.clear_articles()
    print("✓ Cleared all stored articles")


def cmd_extract(args):
    """Handle the extract command."""
    system = NewsChatSystem()

    print(f"Extracting article from: {args.url}")
    result = system.test_extraction(args.url)

    if result['success']:
        print(f"✓ Extracted {result['content_length']} characters")
        print()
        print(result['content'])
    else:
        print(f"✗ Extraction failed: {result.get('error', 'Unknown error')}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description='News Chat - ask questions about recent news',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest all configured RSS sources
  news-chat ingest

  # Ingest a single source
  news-chat ingest --source "BBC News"

  # Ask a question
  news-chat ask "What is happening with the global economy?"

  # Start an interactive conversation
  news-chat chat

  # View statistics
  news-chat stats
        """
    )

    # Global arguments
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Ingest command
    ingest_parser = subparsers.add_parser(
        'ingest',
        help='Ingest articles from the configured RSS sources'
    )
    ingest_parser.add_argument(
        '--source',
        help='Name of a single source to ingest'
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # Ask command
    ask_parser = subparsers.add_parser(
        'ask',
        help='Ask a question and get an AI-generated answer'
    )
    ask_parser.add_argument(
        'question',
        help='Question to ask'
    )
    ask_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Disable source citations'
    )
    ask_parser.set_defaults(func=cmd_ask)

    # Chat command
    chat_parser = subparsers.add_parser(
        'chat',
        help='Start an interactive multi-turn conversation'
    )
    chat_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Disable source citations'
    )
    chat_parser.set_defaults(func=cmd_chat)

    # Stats command
    stats_parser = subparsers.add_parser(
        'stats',
        help='Display system statistics'
    )
    stats_parser.set_defaults(func=cmd_stats)

    # Sources command
    sources_parser = subparsers.add_parser(
        'sources',
        help='List configured news sources'
    )
    sources_parser.set_defaults(func=cmd_sources)

    # Clear command
    clear_parser = subparsers.add_parser(
        'clear',
        help='Delete all stored articles'
    )
    clear_parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Skip the confirmation prompt'
    )
    clear_parser.set_defaults(func=cmd_clear)

    # Extract command
    extract_parser = subparsers.add_parser(
        'extract',
        help='Test article extraction on a single URL'
    )
    extract_parser.add_argument(
        'url',
        help='Article URL'
    )
    extract_parser.set_defaults(func=cmd_extract)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    # Execute command
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n✗ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
