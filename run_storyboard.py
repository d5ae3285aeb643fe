"""Generate a storyboard from a script file.

Usage:
    python run_storyboard.py --script script.txt --style Watercolor
    python run_storyboard.py --script - --character "a small brown dog" --output out/
    python run_storyboard.py --script script.txt --modify 2 "Make it nighttime" --play
"""

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
load_dotenv()

from storyboard import CreativeDirection, RunStatus, StoryboardController, StoryboardRenderer
from storyboard.config import DEFAULT_STYLE, STYLE_PRESETS
from storyboard.errors import StoryboardError
from storyboard.exporter import export_storyboard


class ConsoleRenderer(StoryboardRenderer):
    """Prints run events to the terminal."""

    def on_progress(self, message, current, total):
        print(f"  ⏳ {message}")

    def on_panel(self, index, panel):
        if panel.failed:
            print(f"    ❌ SHOT {index + 1} FAILED: {panel.failure_reason}")
        else:
            print(f"    ✅ SHOT {index + 1}: {panel.caption[:100]}")

    def on_panel_updated(self, index, panel):
        print(f"    🎨 SHOT {index + 1} image updated")

    def on_error(self, message):
        print(f"\n❌ Error: {message}")


def _read_script(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path) as f:
        return f.read()


async def main(args) -> int:
    print("=" * 60)
    print("🎬 GENERATING STORYBOARD")
    print("=" * 60)

    direction = CreativeDirection(style=args.style, character=args.character)
    controller = StoryboardController(renderer=ConsoleRenderer())

    try:
        state = await controller.start_run(_read_script(args.script), direction)
    except StoryboardError:
        return 1

    if state.status == RunStatus.FAILED:
        return 1

    if args.modify_shot is not None:
        result = await controller.request_modification(
            args.modify_instruction, index=args.modify_shot - 1
        )
        if result is None:
            print(f"    ⚠️ Shot {args.modify_shot} cannot be modified")
        elif not result.success:
            print(f"    ❌ {result.error}")

    manifest = export_storyboard(state, args.output)

    print("\n" + "=" * 60)
    print("✅ STORYBOARD COMPLETE!")
    print("=" * 60)
    print(f"\n🎬 Scenes: {state.scene_count}")
    print(f"❌ Failed: {len(state.failed_scenes)}")
    print(f"📁 Manifest: {manifest}")

    if args.play:
        slideshow = controller.slideshow()
        await slideshow.play(
            lambda frame: print(f"\n  ▶ {frame.label} [{frame.animation}]\n    {frame.caption}")
        )

    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Script-to-storyboard generator")
    parser.add_argument("--script", required=True, help="Script file, or - for stdin")
    parser.add_argument(
        "--style", default=DEFAULT_STYLE,
        help=f"Visual style (e.g. {', '.join(STYLE_PRESETS)})",
    )
    parser.add_argument("--character", default=None, help="Character description to keep consistent")
    parser.add_argument("--output", default="storyboard_output", help="Directory for images and manifest")
    parser.add_argument(
        "--modify", nargs=2, metavar=("SHOT", "INSTRUCTION"),
        help="Apply one modification to a shot (1-based) after generation",
    )
    parser.add_argument("--play", action="store_true", help="Play the slideshow in the terminal")
    args = parser.parse_args(argv)

    args.modify_shot = None
    args.modify_instruction = None
    if args.modify:
        shot_text, args.modify_instruction = args.modify
        try:
            args.modify_shot = int(shot_text)
        except ValueError:
            parser.error(f"--modify SHOT must be a shot number, got {shot_text!r}")
        if args.modify_shot < 1:
            parser.error(f"--modify SHOT must be 1 or greater, got {args.modify_shot}")
    return args


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    sys.exit(asyncio.run(main(parse_args())))
