"""
Calla Compiler Pipeline
parse -> analyze -> optimize, plus an actor front end that compiles
several programs at once. Each run owns its parser and scope chain; only
the read-only standard library is shared.
"""

from typing import Any, Dict, List, Optional
import pykka

from error_handling import CallaError
from optimizer import optimize
from parsing import CallaParser, create_parser
from semantics import analyze_program


OUTPUT_TYPES = ("parsed", "analyzed", "optimized")


def compile_source(source: str, output_type: str = "optimized", filename: str = "<input>",
                   debug: bool = False, parser: Optional[CallaParser] = None) -> Any:
  """
  Run the pipeline up to output_type

  Returns the CST for "parsed", the decorated Program for "analyzed" and
  the optimized Program for "optimized". Errors propagate as CallaError.
  """
  if output_type not in OUTPUT_TYPES:
    raise ValueError(f"Unknown output type: {output_type} (expected one of {', '.join(OUTPUT_TYPES)})")

  parser = parser or create_parser(debug)
  cst = parser.parse_string(source, filename)
  if output_type == "parsed":
    return cst

  program = analyze_program(cst, debug)
  if output_type == "analyzed":
    return program

  return optimize(program, debug)


# ============================================================================
# ACTOR SYSTEM (Using Pykka)
# ============================================================================

def make_compile_request(source: str, output_type: str = "optimized", filename: str = "<input>") -> Dict:
  """Create a message for CompilerActor"""
  return {
      'source': source,
      'output_type': output_type,
      'filename': filename
  }


class CompilerActor(pykka.ThreadingActor):
  """Actor that compiles one request at a time with its own parser"""

  def __init__(self, debug: bool = False):
    super().__init__()
    self.debug = debug
    self.parser = create_parser(debug)

  def on_receive(self, message: Dict) -> Any:
    """Compile the requested source; errors are returned to the asker"""
    return compile_source(
        message['source'],
        message.get('output_type', "optimized"),
        message.get('filename', "<input>"),
        self.debug,
        self.parser,
    )


def compile_concurrently(sources: List[str], output_type: str = "optimized",
                         timeout: Optional[float] = 30.0, debug: bool = False) -> List[Any]:
  """
  Compile every source in its own actor

  Returns one entry per source, in order: the compiled result, or the
  CallaError that stopped that program. One failing program does not
  affect the others.
  """
  actors = [CompilerActor.start(debug) for _ in sources]
  try:
    futures = [
        actor.ask(make_compile_request(source, output_type, f"<source {i}>"), block=False)
        for i, (actor, source) in enumerate(zip(actors, sources))
    ]
    results: List[Any] = []
    for future in futures:
      try:
        results.append(future.get(timeout=timeout))
      except CallaError as e:
        results.append(e)
    return results
  finally:
    for actor in actors:
      actor.stop()
