from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas
from reportlab.lib.units import inch
import os

out_path = os.path.join(os.path.dirname(__file__), "..", "data", "raw", "synthetic_purchase_order.pdf")
os.makedirs(os.path.dirname(out_path), exist_ok=True)

# (tag, product, manufacturer, finish, size, price)
LINE_ITEMS = [
    ("CH-1", "Mesh-Back Task Chair", "Herman Miller", "Graphite", "27\" W x 27\" D", "$1,245.00"),
    ("DK-2", "Height-Adjustable Desk", "Steelcase", "Walnut / Arctic White", "60\" x 30\"", "$1,890.00"),
    ("MA-1", "Dual Monitor Arm", "Humanscale", "Silver", "N/A", "$425.00"),
    ("LT-4", "LED Pendant Light", "Artemide", "Matte Black", "18\" Dia.", "$680.00"),
]

c = canvas.Canvas(out_path, pagesize=LETTER)
w, h = LETTER

c.setFont("Helvetica-Bold", 14)
c.drawString(1*inch, h-1*inch, "PURCHASE ORDER  PO-2025-0142")
c.setFont("Helvetica", 10)
c.drawString(1*inch, h-1.3*inch, "Project: Riverside Office Fit-Out, Level 3")
c.drawString(1*inch, h-1.5*inch, "Ship to: 200 Market St, Suite 300")

y = h - 2.1*inch
c.setFont("Helvetica-Bold", 9)
for x, label in zip((1, 1.6, 3.5, 4.8, 6.0, 7.0), ("Tag", "Item", "Manufacturer", "Finish", "Size", "Price")):
    c.drawString(x*inch, y, label)

c.setFont("Helvetica", 9)
for tag, item, mfr, finish, size, price in LINE_ITEMS:
    y -= 0.3*inch
    for x, value in zip((1, 1.6, 3.5, 4.8, 6.0, 7.0), (tag, item, mfr, finish, size, price)):
        c.drawString(x*inch, y, value)

c.showPage()

# second page so citations can point past page 1
c.setFont("Helvetica-Bold", 12)
c.drawString(1*inch, h-1*inch, "Notes")
c.setFont("Helvetica", 10)
c.drawString(1*inch, h-1.4*inch, "DK-2: include cable management tray and programmable keypad.")
c.drawString(1*inch, h-1.7*inch, "CH-1: PostureFit SL, adjustable arms, standard carpet casters.")

c.showPage()
c.save()
print(f"Created {out_path}")
