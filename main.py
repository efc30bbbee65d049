#!/usr/bin/env python3
"""
Travel Buddy - Main Entry Point
===============================

Command-line interface for the intent matcher and its chat API.

Usage:
    python main.py --web                      # Start the chat API
    python main.py --test "book hotel"        # Match one message
    python main.py --test "réserver un hôtel" --lang fr
    python main.py --list                     # Show loaded intents
    python main.py --check                    # Validate config and intents file
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import load_config, Config
from core.logging import setup_logging
from core.exceptions import TravelBuddyError
from rules.engine import RuleSet, match_intent
from rules.loader import load_rules
from rules.normalize import normalize_lang, normalize_text
from rules.bridge import bridge_french_query


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Travel Buddy - bilingual intent matching chat server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --web                         Start the chat API
  python main.py --web --port 9000             Start on port 9000
  python main.py --test "hi there"             Match a message
  python main.py --test "un taxi" --lang fr    Match a French message
  python main.py --list --rules ./intents.csv  List intents from a file
        """
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--web",
        action="store_true",
        help="Start the chat API server"
    )
    mode_group.add_argument(
        "--test",
        metavar="MESSAGE",
        help="Match a single message and print the result"
    )
    mode_group.add_argument(
        "--list",
        action="store_true",
        help="List the loaded intents"
    )
    mode_group.add_argument(
        "--check",
        action="store_true",
        help="Validate the configuration and the intents file"
    )

    parser.add_argument(
        "--lang",
        type=str,
        default="en",
        help="Language of the test message (default: en)"
    )
    parser.add_argument(
        "--rules",
        type=str,
        metavar="PATH",
        help="Path to intents.csv"
    )
    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host for the chat API (default: from config)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port for the chat API (default: from config)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    return parser.parse_args(argv)


def run_test_message(rule_set: RuleSet, message: str, lang: str) -> None:
    """Print how a single message is matched."""
    resolved = normalize_lang(lang)
    subject = bridge_french_query(message) if resolved == "fr" else message

    print(f"\nMessage:  {message}")
    print(f"Language: {resolved}")
    if subject != message:
        print(f"Bridged:  {subject}")
    print(f"Compared: {normalize_text(subject)}")
    print("-" * 50)

    result = match_intent(rule_set, message, lang)
    if result is None:
        print("No intent matched (the LLM fallback would answer)")
        return

    print(f"Intent:   {result.intent}")
    print(f"Response: {result.response or '(empty)'}")


def run_list_intents(rule_set: RuleSet) -> None:
    """Print every loaded rule."""
    print(f"\n{len(rule_set)} rules loaded from {rule_set.source}\n")
    for rule in rule_set:
        print(f"{rule.intent}")
        print(f"  patterns: {' | '.join(rule.patterns) or '(none)'}")
        print(f"  en: {rule.responses.get('en', '')}")
        if rule.responses.get("fr"):
            print(f"  fr: {rule.responses['fr']}")


def run_check(config: Config, rule_set: RuleSet) -> None:
    """Print a short report on the configuration and rules."""
    print("\nConfiguration")
    print("-" * 30)
    print(f"  Config dir:   {config.config_dir}")
    print(f"  LLM provider: {config.llm.provider}")
    print(f"  LLM API key:  {'✓ Set' if config.llm.api_key else '✗ Not Set'}")
    print(f"  History size: {config.chat.history_size}")

    print("\nIntents")
    print("-" * 30)
    print(f"  Source: {rule_set.source}")
    print(f"  Rules:  {len(rule_set)}")
    print(f"  Intents: {', '.join(rule_set.intents) or '(none)'}")

    no_patterns = [rule.intent for rule in rule_set if not rule.patterns]
    if no_patterns:
        print(f"  ⚠ Rules without patterns (never match): {', '.join(no_patterns)}")

    for intent in config.chat.trigger_intents:
        if intent not in rule_set.intents:
            print(f"  ⚠ Trigger intent not defined: {intent}")


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)

        if args.rules:
            config.rules.rules_file = args.rules
        if args.debug:
            config.debug = True

        setup_logging(
            log_dir=config.log_dir if args.web else None,
            log_level="DEBUG" if args.debug else "INFO",
            console_output=True
        )

        # Fatal when intents.csv is missing
        rule_set = load_rules(config)

        if args.web:
            from ui.web.app import run_app
            print(f"\nStarting chat API with {len(rule_set)} intent rules")
            print("Press Ctrl+C to stop\n")
            run_app(host=args.host, port=args.port, debug=args.debug,
                    config=config, rule_set=rule_set)
        elif args.test is not None:
            run_test_message(rule_set, args.test, args.lang)
        elif args.list:
            run_list_intents(rule_set)
        else:
            run_check(config, rule_set)
            if not args.check:
                print("\nNo mode specified. Use --web, --test, --list or --help")

        return 0

    except TravelBuddyError as e:
        print(f"\nError: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
