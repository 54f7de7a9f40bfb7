"""
Test Suite for the Command-Line Interface

NewsChatSystem is patched out; these tests cover argument parsing and output.
"""

import pytest
from unittest.mock import patch

from news_chat.cli import build_parser, main
from news_chat.models import Article, IngestionStats, QueryResult, QueryStatus


def answered(from_cache: bool = False) -> QueryResult:
    article = Article(
        id="id-1",
        title="Rates held steady",
        content="Body",
        url="https://example.com/rates",
        published_at="2024-10-01",
        source="World Wire",
    )
    return QueryResult(
        response_text="The bank held rates [1].",
        sources=[article],
        from_cache=from_cache,
        candidate_count=1,
        status=QueryStatus.CACHED if from_cache else QueryStatus.ANSWERED,
    )


@pytest.fixture
def system_cls():
    with patch('news_chat.cli.NewsChatSystem') as cls:
        yield cls


class TestParser:
    """Test argument parsing."""

    def test_ingest_source_option(self):
        args = build_parser().parse_args(['ingest', '--source', 'BBC News'])
        assert args.command == 'ingest'
        assert args.source == 'BBC News'

    def test_ask_requires_question(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['ask'])

    def test_verbose_flag(self):
        args = build_parser().parse_args(['-v', 'stats'])
        assert args.verbose is True

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


class TestCommands:
    """Test command handlers."""

    def test_ask(self, system_cls, capsys):
        system_cls.return_value.ask.return_value = answered()

        main(['ask', 'What did the bank do?'])

        output = capsys.readouterr().out
        assert "The bank held rates [1]." in output
        assert "Rates held steady" in output
        system_cls.return_value.ask.assert_called_once_with('What did the bank do?')

    def test_ask_no_sources(self, system_cls, capsys):
        system_cls.return_value.ask.return_value = answered()

        main(['ask', 'Question?', '--no-sources'])

        assert "Rates held steady" not in capsys.readouterr().out

    def test_ask_cached_marker(self, system_cls, capsys):
        system_cls.return_value.ask.return_value = answered(from_cache=True)
        main(['ask', 'Question?'])
        assert "(cached response)" in capsys.readouterr().out

    def test_ingest_all(self, system_cls, capsys):
        system = system_cls.return_value
        system.sources = [object(), object()]
        system.ingest_all.return_value = IngestionStats(
            total_collected=5, total_stored=4, sources_processed=2,
            categories={'world'}, regions={'UK'}
        )

        main(['ingest'])

        output = capsys.readouterr().out
        assert "Articles collected: 5" in output
        assert "Articles stored: 4" in output
        system_cls.assert_called_once_with(show_progress=True)

    def test_ingest_unknown_source_exits(self, system_cls, capsys):
        system_cls.return_value.ingest_source.side_effect = KeyError('Nope')

        with pytest.raises(SystemExit) as exc_info:
            main(['ingest', '--source', 'Nope'])

        assert exc_info.value.code == 1
        assert "Unknown source" in capsys.readouterr().out

    def test_stats(self, system_cls, capsys):
        system_cls.return_value.get_stats.return_value = {
            'total_articles': 42,
            'sources': 18,
            'status': 'available',
            'last_ingestion': None,
            'vector_store': {'dimension': 768, 'index_type': 'IndexIDMap2(IndexFlatIP)', 'metric': 'cosine'},
        }

        main(['stats'])

        output = capsys.readouterr().out
        assert "Total Articles: 42" in output
        assert "Metric: cosine" in output

    def test_sources(self, system_cls, capsys):
        system_cls.return_value.list_sources.return_value = [
            {'name': 'BBC News', 'url': 'https://bbc.example.com/rss', 'category': 'world', 'region': 'UK'},
        ]

        main(['sources'])

        output = capsys.readouterr().out
        assert "BBC World [world, UK]" in output

    def test_clear_with_confirmation_flag(self, system_cls, capsys):
        main(['clear', '--yes'])
        system_cls.return_value.clear_articles.assert_called_once()

    def test_clear_aborted(self, system_cls, capsys):
        with patch('builtins.input', return_value='n'):
            main(['clear'])
        system_cls.assert_not_called()
        assert "Aborted" in capsys.readouterr().out

    def test_extract_failure_exits(self, system_cls, capsys):
        system_cls.return_value.test_extraction.return_value = {
            'url': 'https://example.com/a', 'success': False, 'error': 'No content extracted'
        }

        with pytest.raises(SystemExit) as exc_info:
            main(['extract', 'https://example.com/a'])

        assert exc_info.value.code == 1
        assert "No content extracted" in capsys.readouterr().out

    def test_chat_loop(self, system_cls, capsys):
        system = system_cls.return_value
        system.start_session.return_value = "session-1"
        system.ask.return_value = answered()

        with patch('builtins.input', side_effect=['What did the bank do?', '', 'quit']):
            main(['chat'])

        system.ask.assert_called_once_with('What did the bank do?', session_id='session-1')
        assert "The bank held rates [1]." in capsys.readouterr().out

    def test_errors_exit_nonzero(self, system_cls, capsys):
        system_cls.return_value.get_stats.side_effect = RuntimeError("boom")

        with pytest.raises(SystemExit) as exc_info:
            main(['stats'])

        assert exc_info.value.code == 1
        assert "boom" in capsys.readouterr().out
