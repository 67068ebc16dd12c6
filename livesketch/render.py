# livesketch/render.py
import argparse
import sys
import time
import traceback
from pathlib import Path

from tqdm import tqdm

from .canvas.base import PARAMS_ERRORS
from .canvas.cairo_canvas import CairoCanvas, export_animation, export_image
from .session import LiveSession


def print_failure(failure):
    where = f" at line {failure.line}" if failure.line is not None else ""
    if failure.line is not None and failure.column is not None:
        where += f", column {failure.column}"
    print(f"❌ {failure.kind.capitalize()} error{where}: {failure.message}")


def draw_frame(canvas, commands, size):
    """Rasterizes a payload; returns None after printing the error if a command cannot be drawn."""
    try:
        return canvas.draw(commands, size)
    except PARAMS_ERRORS as e:
        print(f"❌ Render error: {type(e).__name__}: {e}")
        return None


def render_single(session: LiveSession, canvas, sketch_path: str, output: str,
                  frames: int = 1, fps: float = 30.0) -> bool:
    """Compiles a sketch file once and exports its first `frames` frames."""
    source = Path(sketch_path).read_text(encoding="utf-8")
    report = session.compile(source)
    if report.error is not None:
        print_failure(report.error)
        return False

    size = session.loop.definition.canvas_size
    images = [draw_frame(canvas, report.commands, size)]
    if images[0] is None:
        return False
    for _ in tqdm(range(frames - 1), desc="Rendering frames", unit="frame", leave=False):
        report = session.step()
        if report.error is not None:
            print_failure(report.error)
            return False
        image = draw_frame(canvas, report.commands, size)
        if image is None:
            return False
        images.append(image)

    if frames > 1:
        export_animation(images, output, fps=fps)
    else:
        export_image(images[0], output)
    print(f"✅ Rendered {len(images)} frame(s) of '{sketch_path}' to: {output}")
    return True


def watch(session: LiveSession, canvas, sketch_path: str, output: str,
          interval: float = 0.1, history_file: str | None = None, iterations: int | None = None):
    """
    Re-renders a sketch file every time it changes, until interrupted.

    Edits go through the session's debouncer, so a burst of saves compiles once.
    A failed edit, or a payload the canvas cannot draw, is printed and the
    last good frame stays on disk.
    """
    path = Path(sketch_path)
    last_text = None
    polls = 0
    print(f"🔍 Watching '{sketch_path}' (Ctrl+C to stop)")
    try:
        while iterations is None or polls < iterations:
            polls += 1
            text = path.read_text(encoding="utf-8") if path.exists() else None
            if text is not None and text != last_text:
                last_text = text
                session.on_source_change(text)
            if session.poll():
                report = session.report()
                if report.error is not None:
                    print_failure(report.error)
                else:
                    image = draw_frame(canvas, report.commands, session.loop.definition.canvas_size)
                    if image is not None:
                        export_image(image, output)
                        print(f"✅ Frame {session.loop.frame_count} rendered to: {output}")
            time.sleep(interval)
    except KeyboardInterrupt:
        print("\n🛑 Stopped watching")
    finally:
        if history_file:
            session.history_frame().to_csv(history_file, index=False)
            print(f"✅ Wrote run history to: {history_file}")


def main(argv=None):
    """Main execution function with command-line parsing."""
    parser = argparse.ArgumentParser(
        description="Render live sketches headlessly.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    # --- Parser for rendering a sketch once ---
    parser_single = subparsers.add_parser("single", help="Render a sketch file to PNG (or GIF with --frames).")
    parser_single.add_argument("sketch", type=str, help="Path to the sketch source file.")
    parser_single.add_argument("output", type=str, help="The path to save the output image.")
    parser_single.add_argument("--frames", type=int, default=1, help="Number of ticks to record.")
    parser_single.add_argument("--fps", type=float, default=30.0, help="Frame rate of the exported GIF.")

    # --- Parser for live re-rendering ---
    parser_watch = subparsers.add_parser("watch", help="Re-render a sketch file whenever it changes.")
    parser_watch.add_argument("sketch", type=str, help="Path to the sketch source file.")
    parser_watch.add_argument("output", type=str, help="The path to save the output PNG image.")
    parser_watch.add_argument("--interval", type=float, default=0.1, help="Seconds between file polls.")
    parser_watch.add_argument("--debounce-ms", type=float, default=16, help="Quiet period before recompiling.")
    parser_watch.add_argument("--history", type=str, default=None, help="CSV file for the run history.")

    args = parser.parse_args(argv)
    canvas = CairoCanvas()

    # --- Execute the chosen command ---
    try:
        if args.command == "single":
            print(f"Rendering sketch '{args.sketch}'...")
            ok = render_single(LiveSession(debounce_ms=0), canvas, args.sketch, args.output,
                               frames=args.frames, fps=args.fps)
            return 0 if ok else 1
        elif args.command == "watch":
            watch(LiveSession(debounce_ms=args.debounce_ms), canvas, args.sketch, args.output,
                  interval=args.interval, history_file=args.history)
            return 0
    except Exception as e:
        print(f"❌ Error rendering '{args.sketch}': {e}")
        print(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
