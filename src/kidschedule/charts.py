# src/kidschedule/charts.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def create_custody_chart(values: list, labels: list, filename: str, colors: list = None, subtitle: str = None):
    """
    Erstellt ein Tortendiagramm der Betreuungsanteile und speichert es als PNG.
    :param values: Werte je Elternteil (Prozent oder Tage).
    :param labels: Zugehörige Labels, z.B. die Namen der Eltern.
    :param filename: Pfad zur Ausgabedatei, z.B. "custody.png".
    :param colors: (Optional) Farben der Segmente.
    :param subtitle: (Optional) Text unter dem Diagramm.
    """
    total = sum(values)
    fig, ax = plt.subplots()
    # Ohne Daten ein Platzhalter-Bild
    if total == 0:
        ax.text(0.5, 0.5, "Keine Daten", ha="center", va="center", fontsize=14)
        ax.axis("off")
    else:
        if colors is not None:
            ax.pie(values, labels=labels, autopct="%1.1f%%", colors=colors)
        else:
            ax.pie(values, labels=labels, autopct="%1.1f%%")
        ax.axis("equal")
    if subtitle:
        fig.text(0.5, 0.02, subtitle, ha="center", va="bottom", fontsize=14, fontweight='bold')
    fig.savefig(filename, bbox_inches="tight")
    plt.close(fig)
    return filename
