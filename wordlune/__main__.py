"""
Entry point for running as a module: python -m wordlune

Usage:
    python -m wordlune                               # Run web app
    python -m wordlune --check-ai                    # Check the Gemini connection
    python -m wordlune --reconcile-stories           # Repair all story author mirrors
    python -m wordlune --reconcile-stories <userId>  # Repair one author's mirrors
"""

import logging
import sys


def main():
    args = sys.argv[1:]

    if '--check-ai' in args:
        from .enrichment import GenerativeModelClient, ModelStatus

        status = GenerativeModelClient().check_status()
        icon = "✅" if status.status == ModelStatus.OK else "❌"
        print(f"\n{icon} {status.model}: {status.message}")
        if status.last_error:
            print(f"   Last error: {status.last_error}")
        print()
        sys.exit(0 if status.status == ModelStatus.OK else 1)

    elif '--reconcile-stories' in args:
        from .config import LOG_LEVEL, LOG_FORMAT
        from .errors import DatabaseUnavailableError
        from .stores import get_client, StoryStore

        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

        # Optional author id after the flag
        author_id = None
        index = args.index('--reconcile-stories')
        if index + 1 < len(args) and not args[index + 1].startswith('-'):
            author_id = args[index + 1]

        scope = f"author {author_id}" if author_id else "all authors"
        print(f"\n🔧 Reconciling story mirrors for {scope}\n")

        try:
            result = StoryStore(get_client()).reconcile_author_mirrors(author_id)
        except DatabaseUnavailableError as e:
            print(f"❌ {e}")
            sys.exit(1)

        print("=" * 60)
        print("📊 Reconciliation Summary")
        print("=" * 60)
        print(f"Mirrors repaired: {result['repaired']}")
        print(f"Orphan mirrors removed: {result['removed']}")
        print()

    elif '--help' in args or '-h' in args:
        print(__doc__)

    else:
        # Run web app
        from .app import main as app_main
        app_main()


if __name__ == '__main__':
    main()
