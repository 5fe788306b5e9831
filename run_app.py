"""Run the app from project root. Use: python run_app.py [ui|api]"""
import os
import subprocess
import sys

root = os.path.dirname(os.path.abspath(__file__))
app_dir = os.path.join(root, "cv_analyzer_ai")
os.chdir(app_dir)
target = sys.argv[1] if len(sys.argv) > 1 else "ui"
if target == "api":
    subprocess.run([sys.executable, "api.py"], check=True)
else:
    subprocess.run([sys.executable, "-m", "streamlit", "run", "app.py"], check=True)
