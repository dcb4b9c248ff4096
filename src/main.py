"""Script de ejecución.

Permite lanzar la CLI con `python src/main.py compile documento.tex` durante
desarrollo, además del script `remote-tex` instalado por el paquete.
"""

from __future__ import annotations

import sys

# Las terminales de Windows (cp1252) no pueden imprimir el banner ni algunos logs de TeX.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
