#!/usr/bin/env python3
"""Create HTML documentation from the source code using `pdoc`."""

# Note: Invoke this script from the parent directory as "pdoc/make.py" !

import pathlib
import re

import pdoc

MODULES = ['./imagesampler']  # One or more module names or file paths.
FOOTER_TEXT = ''
TEMPLATE_DIRECTORY = pathlib.Path('./pdoc')
OUTPUT_DIRECTORY = pathlib.Path('./docs')


def main() -> None:
  """Invoke `pdoc` on the module source files."""
  pdoc.render.configure(
    docformat='google',
    edit_url_map=None,
    footer_text=FOOTER_TEXT,
    math=True,  # Default is False.
    search=True,  # Default is True.
    show_source=True,  # Default is True.
    template_directory=TEMPLATE_DIRECTORY,
  )

  pdoc.pdoc(
    *MODULES,
    output_directory=OUTPUT_DIRECTORY,
  )

  output_file = OUTPUT_DIRECTORY / 'imagesampler.html'
  text = output_file.read_text()
  # collections.abc.Callable -> Callable.
  text = text.replace('<span class="n">collections</span><span class="o">'
                      '.</span><span class="n">abc</span><span class="o">.</span>', '')
  # imagesampler.ImageSampler, imagesampler.Kernel, etc. -> ImageSampler, Kernel, etc.
  text = re.sub(r'imagesampler\.([A-Z][A-Za-z]+)', r'\1', text)
  output_file.write_text(text)


if __name__ == '__main__':
  main()
