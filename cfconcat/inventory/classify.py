"""Text/binary classification from extension tables and a content sniff.

Known extensions answer immediately. Unknown files are sniffed: a null byte
or a buffer that is not well-formed UTF-8 marks the file as binary.
"""

from __future__ import annotations

import codecs
from pathlib import Path

MAX_FILE_SIZE = 20 * 1024 * 1024
SNIFF_BYTES = 1024
NO_EXTENSION = "no extension"

TEXT_EXTENSIONS = frozenset(
    """
    txt md markdown rst asciidoc adoc rs py js ts jsx tsx java c cpp cxx cc h hpp hxx
    go rb php swift kt kts scala clj cljs hs ml fs fsx html htm xml xhtml css scss sass
    less svg vue svelte json yaml yml toml ini cfg conf config properties sql sh bash
    zsh fish ps1 bat cmd dockerfile makefile cmake gradle maven pom build tex bib r m pl
    lua vim el lisp dart elm ex exs erl hrl nim crystal cr zig odin v log trace out err
    diff patch gitignore gitattributes editorconfig env example sample template spec
    test readme license changelog todo notes doc docs man help faq lock sum mod work
    pest ron map mjs cjs coffee litcoffee ls flow pegjs graphql gql prisma proto thrift
    avsc jsonl ndjson csv tsv psv ssv tab data idx org cls sty bst aux fdb_latexmk fls
    rmd rnw jl ipynb pyx pxd pxi pyi gnumakefile containerfile vagrantfile rakefile
    gemfile guardfile procfile capfile berksfile jenkinsfile dangerfile fastfile appfile
    deliverfile snapfile ignore keep gitkeep npmignore dockerignore eslintrc babelrc
    browserslistrc nvmrc rvmrc rbenv-version ruby-version node-version wasm wat wit
    component lalrpop y l lex yacc capnp fbs schema avdl gn gni bp workspace bzl nix
    drv store-path dhall purescript purs roc gleam grain hx hxml moon just justfile task
    taskfile clang-format rustfmt modulemap def exports version in am ac m4 ctest
    service socket timer mount desktop appdata metainfo
    """.split()
)

IMAGE_EXTENSIONS = frozenset(
    """
    jpg jpeg png gif bmp ico webp tiff tif raw cr2 nef orf dng heic heif avif jfif
    """.split()
)

BINARY_EXTENSIONS = frozenset(
    """
    exe dll so dylib app deb rpm msi zip tar gz bz2 7z rar jar war mp3 mp4 avi mkv mov
    wmv flv webm pdf docx xlsx pptx bin dat db sqlite sqlite3 rlib rmeta d pdb ilk exp
    lib a obj o class pyc pyo __pycache__ cache tmp temp swap bak backup fingerprint
    deps incremental crate gem whl egg snap flatpak
    """.split()
)


def extension_of(path: Path) -> str:
    """Return the lowercased final suffix of ``path`` without the dot.

    Returns ``""`` for extensionless names (including dotfiles like
    ``.gitignore``, which have no suffix in ``pathlib`` terms).
    """
    return path.suffix[1:].lower()


def _looks_binary(chunk: bytes) -> bool:
    if b"\x00" in chunk:
        return True
    # The sniff window can split a multibyte character; only reject
    # sequences that are invalid before the end of the buffer.
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(chunk, final=False)
    except UnicodeDecodeError:
        return True
    return False


def is_binary_file(path: Path, size: int | None = None) -> bool:
    """Return whether ``path`` should be treated as binary content.

    ``size`` skips the ``stat`` call when the caller already knows it. Any
    stat or read failure classifies the file as binary.
    """
    extension = extension_of(path)
    if extension:
        if extension in TEXT_EXTENSIONS:
            return False
        if extension in BINARY_EXTENSIONS or extension in IMAGE_EXTENSIONS:
            return True

    if size is None:
        try:
            size = int(path.stat().st_size)
        except OSError:
            return True
    if size > MAX_FILE_SIZE:
        return True
    if size == 0:
        return False

    try:
        with path.open("rb") as handle:
            chunk = handle.read(SNIFF_BYTES)
    except OSError:
        return True
    if not chunk:
        return False
    return _looks_binary(chunk)


__all__ = [
    "BINARY_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "MAX_FILE_SIZE",
    "NO_EXTENSION",
    "SNIFF_BYTES",
    "TEXT_EXTENSIONS",
    "extension_of",
    "is_binary_file",
]
