#!/usr/bin/env python3
"""
VOLT Legal CLI Interface
Command-line interface for document analysis, glossary lookup and document chat
"""

import sys
from pathlib import Path
import argparse
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .core.analysis import (
    AnalysisError,
    ContentFetchError,
    FollowUpRequest,
    LegalAnalyzer,
    ValidationError,
    validate_analysis_request,
)
from .core.config import VoltConfig, default_config
from .core.glossary import GlossaryManager
from .core.prompts import DOCUMENT_TYPES, VALID_TONES
from .core.terms import GlossaryError

console = Console()

TERM_STYLE = "bold underline cyan"


class VoltCLI:
    """Command-line interface for VOLT Legal"""

    def __init__(self,
                 config: Optional[VoltConfig] = None,
                 glossary_mgr: Optional[GlossaryManager] = None,
                 analyzer: Optional[LegalAnalyzer] = None):
        self.config = config or default_config
        self.glossary_mgr = glossary_mgr or GlossaryManager.from_config(self.config)
        self._analyzer = analyzer
        self.tone = "serious"
        self.document_type = "general"
        self.last_analysis: Optional[Dict[str, Any]] = None
        self.conversation_history: List[Dict[str, Any]] = []

    @property
    def analyzer(self) -> LegalAnalyzer:
        # Built on first use so glossary-only commands need no model
        if self._analyzer is None:
            self._analyzer = LegalAnalyzer(self.config)
        return self._analyzer

    def highlighted_text(self, text: str) -> Text:
        """Build a rich Text with glossary terms styled"""
        rendered = Text()
        for segment in self.glossary_mgr.highlight(text):
            if segment.is_highlighted:
                rendered.append(segment.text, style=TERM_STYLE)
            else:
                rendered.append(segment.text)
        return rendered

    def show_highlighted(self, text: str):
        """Print text with glossary terms highlighted and a definitions table"""
        console.print(Panel(self.highlighted_text(text), title="📄 Document", border_style="cyan"))

        terms = self.glossary_mgr.extract_terms(text)
        if not terms:
            console.print("No glossary terms found.", style="yellow")
            return

        term_table = Table(title="📚 Legal Terms Found")
        term_table.add_column("Term", style="cyan")
        term_table.add_column("Category", style="magenta")
        term_table.add_column("Meaning", style="green", overflow="fold")
        for term in terms:
            term_table.add_row(term.term, term.category, term.definition)
        console.print(term_table)

    def analyze(self,
                text: Optional[str] = None,
                url: Optional[str] = None,
                tone: Optional[str] = None,
                document_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Analyze a document and print summary and red flags"""
        body = {
            "legal_terms": text,
            "input_url": url,
            "tone": tone or self.tone,
            "document_type": document_type or self.document_type,
        }

        try:
            analysis_request = validate_analysis_request(body, self.config)
        except ValidationError as e:
            console.print(f"❌ {e}", style="red")
            return None

        with console.status("[bold cyan]Analyzing document..."):
            try:
                result = self.analyzer.analyze(analysis_request)
            except (ContentFetchError, AnalysisError) as e:
                console.print(f"❌ Error: {str(e)}", style="red")
                return None

        self.last_analysis = result
        self.conversation_history = []
        self._print_analysis(result)
        return result

    def _print_analysis(self, result: Dict[str, Any]):
        console.print("\n")
        for item in result["summary"]:
            console.print(Panel(
                self.highlighted_text(item["description"]),
                title=f"📋 {item['title']}",
                border_style="green"
            ))

        flag_table = Table(title="🚩 Red Flags")
        flag_table.add_column("#", style="dim", width=3)
        flag_table.add_column("Concern", style="red", overflow="fold")
        for i, flag in enumerate(result["red_flags"], start=1):
            flag_table.add_row(str(i), flag)
        console.print(flag_table)

        if result.get("assessment"):
            console.print(Panel(result["assessment"], title="⚖️ Overall Assessment", border_style="yellow"))

        console.print(
            f"[dim]Tone: {result['tone_used']} | Type: {result['document_type']} | "
            f"Examples used: {result['chunks_used']} | {result['processing_time_ms']} ms[/dim]"
        )

    def ask(self, question: str) -> Optional[str]:
        """Ask a follow-up question about the last analysed document"""
        if self.last_analysis is None:
            console.print("❌ No document analysed yet. Use /analyze <file> first.", style="red")
            return None

        history = [
            {"role": role, "content": entry[key]}
            for entry in self.conversation_history
            for role, key in (("user", "question"), ("assistant", "answer"))
        ]
        followup = FollowUpRequest(
            document_text=self.last_analysis["legal_text"],
            user_question=question,
            conversation_history=history,
            tone=self.tone,
        )

        with console.status("[bold cyan]Thinking..."):
            try:
                answer = self.analyzer.follow_up(followup)
            except AnalysisError as e:
                console.print(f"❌ Error: {str(e)}", style="red")
                return None

        console.print(Panel(self.highlighted_text(answer), title="🤖 Assistant", border_style="cyan"))
        self.conversation_history.append({
            "timestamp": datetime.now().isoformat(),
            "question": question,
            "answer": answer,
        })
        return answer

    def define(self, phrase: str):
        """Print the definition of a glossary term"""
        term = self.glossary_mgr.get_definition(phrase)
        if term is None:
            console.print(f"No definition for '{phrase}'", style="yellow")
            matches = self.glossary_mgr.search_terms(phrase)[:5]
            if matches:
                console.print("Did you mean: " + ", ".join(t.term for t in matches), style="dim")
            return
        console.print(Panel(term.definition, title=f"📖 {term.term} ({term.category})", border_style="green"))

    def search(self, query: str):
        """Print glossary search results"""
        results = self.glossary_mgr.search_terms(query)
        if not results:
            console.print(f"No terms match '{query}'", style="yellow")
            return

        results_table = Table(title=f"🔎 Glossary matches for '{query}'")
        results_table.add_column("Term", style="cyan")
        results_table.add_column("Category", style="magenta")
        results_table.add_column("Meaning", style="green", overflow="fold")
        for term in results:
            results_table.add_row(term.term, term.category, term.definition)
        console.print(results_table)

    def export_conversation(self, output_path: str, format: str = "json"):
        """Export the last analysis and conversation"""
        if self.last_analysis is None:
            console.print("Nothing to export yet", style="yellow")
            return

        try:
            if format == "json":
                with open(output_path, 'w', encoding='utf-8') as f:
                    json.dump({
                        "analysis": self.last_analysis,
                        "conversation": self.conversation_history,
                    }, f, indent=2, ensure_ascii=False)
            else:
                lines = ["# VOLT Legal Analysis", ""]
                for item in self.last_analysis["summary"]:
                    lines += [f"## {item['title']}", "", item["description"], ""]
                lines += ["## Red Flags", ""]
                lines += [f"- {flag}" for flag in self.last_analysis["red_flags"]]
                if self.last_analysis.get("assessment"):
                    lines += ["", "## Overall Assessment", "", self.last_analysis["assessment"]]
                for entry in self.conversation_history:
                    lines += ["", f"**Q:** {entry['question']}", "", entry["answer"]]
                Path(output_path).write_text("\n".join(lines) + "\n", encoding='utf-8')

            console.print(f"✅ Exported analysis to {output_path}", style="green")

        except OSError as e:
            console.print(f"❌ Export failed: {str(e)}", style="red")

    def interactive_mode(self):
        """Chat about documents interactively"""
        console.print(Panel(
            "[bold cyan]VOLT Legal Interactive Mode[/bold cyan]\n"
            "Ask questions about the analysed document, or use commands:\n"
            "  /help - Show commands\n"
            "  /analyze <file> - Analyze a document\n"
            "  /define <term> - Define a legal term\n"
            "  /exit - Exit",
            title="⚖️ Welcome to VOLT Legal",
            border_style="cyan"
        ))

        while True:
            try:
                question = console.input("\n[bold cyan]You:[/bold cyan] ")

                if question.startswith("/"):
                    if not self._handle_command(question):
                        break
                elif question.strip():
                    self.ask(question.strip())

            except (KeyboardInterrupt, EOFError):
                console.print("\n👋 Goodbye!", style="yellow")
                break

    def _handle_command(self, command: str) -> bool:
        """Handle special commands; returns False to leave interactive mode"""
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "/exit":
            console.print("👋 Goodbye!", style="yellow")
            return False

        elif cmd == "/help":
            help_text = f"""
[bold]Available Commands:[/bold]
  /help            - Show this help
  /analyze <file>  - Analyze a text file
  /url <url>       - Analyze a web page
  /highlight <txt> - Highlight legal terms in text
  /define <term>   - Define a legal term
  /search <query>  - Search the glossary
  /tone <tone>     - Set tone ({', '.join(VALID_TONES)})
  /type <type>     - Set document type ({', '.join(DOCUMENT_TYPES)})
  /export <file>   - Export analysis (add .json or .md extension)
  /history         - Show conversation history
  /clear           - Clear the console
  /exit            - Exit the program
            """
            console.print(Panel(help_text, title="Help", border_style="green"))

        elif cmd == "/analyze" and arg:
            try:
                text = Path(arg).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                console.print(f"Cannot read {arg}: {e}", style="red")
            else:
                self.analyze(text=text)

        elif cmd == "/url" and arg:
            self.analyze(url=arg)

        elif cmd == "/highlight" and arg:
            self.show_highlighted(arg)

        elif cmd == "/define" and arg:
            self.define(arg)

        elif cmd == "/search" and arg:
            self.search(arg)

        elif cmd == "/tone" and arg:
            if arg in VALID_TONES:
                self.tone = arg
                console.print(f"Tone set to {arg}", style="green")
            else:
                console.print(f"Invalid tone. Must be one of: {', '.join(VALID_TONES)}", style="red")

        elif cmd == "/type" and arg:
            if arg in DOCUMENT_TYPES:
                self.document_type = arg
                console.print(f"Document type set to {arg}", style="green")
            else:
                console.print(f"Invalid document type. Must be one of: {', '.join(DOCUMENT_TYPES)}", style="red")

        elif cmd == "/export" and arg:
            format = "markdown" if arg.endswith('.md') else "json"
            self.export_conversation(arg, format)

        elif cmd == "/history":
            if self.conversation_history:
                history_table = Table(title="📜 Conversation History")
                history_table.add_column("Time", style="cyan")
                history_table.add_column("Question", style="green", overflow="fold")

                for entry in self.conversation_history[-10:]:  # Last 10
                    timestamp = datetime.fromisoformat(entry['timestamp']).strftime("%H:%M:%S")
                    question = entry['question'][:50] + "..." if len(entry['question']) > 50 else entry['question']
                    history_table.add_row(timestamp, question)

                console.print(history_table)
            else:
                console.print("No conversation history yet.", style="yellow")

        elif cmd == "/clear":
            console.clear()

        else:
            console.print(f"Unknown command: {cmd}", style="red")

        return True


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="VOLT Legal - plain-language legal document analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Interactive mode
  voltlegal

  # Analyze a lease in a sarcastic tone
  voltlegal --analyze lease.txt --doc-type lease --tone sarcastic

  # Highlight legal terms from stdin
  cat contract.txt | voltlegal --highlight -

  # Glossary lookup
  voltlegal --define "force majeure"
  voltlegal --export-glossary csv > glossary.csv
        """
    )

    parser.add_argument("--analyze", "-a", help="Text file to analyze ('-' for stdin)")
    parser.add_argument("--url", "-u", help="Web page URL to analyze")
    parser.add_argument("--tone", "-t", choices=VALID_TONES, default="serious", help="Analysis tone")
    parser.add_argument("--doc-type", "-d", choices=DOCUMENT_TYPES, default="general", help="Document type")
    parser.add_argument("--highlight", help="Text file to highlight ('-' for stdin)")
    parser.add_argument("--define", help="Show the definition of a legal term")
    parser.add_argument("--search", "-s", help="Search the glossary")
    parser.add_argument("--export-glossary", choices=["json", "yaml", "csv", "html"],
                        help="Print the glossary in the given format")
    parser.add_argument("--glossary", "-g", help="Glossary file (YAML or JSON)")
    parser.add_argument("--config", "-c", help="Configuration file (YAML)")
    parser.add_argument("--export", "-e", help="Export the analysis to file (.json or .md)")

    args = parser.parse_args(argv)

    try:
        config = VoltConfig.load_from_file(args.config) if args.config else VoltConfig()
    except ValueError as e:
        console.print(f"❌ {e}", style="red")
        return 1

    if args.glossary:
        config.glossary.glossary_path = args.glossary
    config.configure_logging()

    try:
        cli = VoltCLI(config)
    except GlossaryError as e:
        console.print(f"❌ Glossary error: {e}", style="red")
        return 1

    cli.tone = args.tone
    cli.document_type = args.doc_type

    try:
        highlight_text = _read_input(args.highlight) if args.highlight else None
        analyze_text = _read_input(args.analyze) if args.analyze else None
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"❌ Cannot read input: {e}", style="red")
        return 1

    if args.export_glossary:
        # Plain print so the output can be redirected to a file
        print(cli.glossary_mgr.export_glossary(args.export_glossary))

    if args.define:
        cli.define(args.define)

    if args.search:
        cli.search(args.search)

    if highlight_text is not None:
        cli.show_highlighted(highlight_text)

    if args.analyze or args.url:
        result = cli.analyze(text=analyze_text, url=args.url)
        if result is None:
            return 1
        if args.export:
            format = "markdown" if args.export.endswith('.md') else "json"
            cli.export_conversation(args.export, format)

    # Enter interactive mode if no specific action
    elif not any([args.export_glossary, args.define, args.search, args.highlight]):
        cli.interactive_mode()

    return 0


if __name__ == "__main__":
    sys.exit(main())
