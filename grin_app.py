import os

from flask import Flask, jsonify, request, send_from_directory, url_for
from flask_cors import CORS
from werkzeug.utils import secure_filename

import grin
from grin_errors import FormatMismatchError, MalformedBitstreamError

# -----------------------------------------------------------
# PATH CONFIGURATION
# -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.environ.get("GRIN_DATA_DIR", os.path.join(BASE_DIR, "data"))
MAX_UPLOAD_MB = int(os.environ.get("GRIN_MAX_UPLOAD_MB", "64"))

GRIN_EXTENSION = ".grin"
# Sub-directories of DATA_DIR
UPLOADS = "uploads"
DOWNLOAD_KINDS = ("encoded", "decoded")

# -----------------------------------------------------------
# FLASK APP SETUP
# -----------------------------------------------------------
app = Flask(__name__)
app.config["DATA_DIR"] = DATA_DIR
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024
CORS(app)

# -----------------------------------------------------------
# HELPER FUNCTIONS
# -----------------------------------------------------------
def data_path(kind, filename=""):
    folder = os.path.join(app.config["DATA_DIR"], kind)
    os.makedirs(folder, exist_ok=True)
    return os.path.join(folder, filename)


def save_upload():
    """Store the uploaded `file` field; returns (filename, path) or an error response."""
    file = request.files.get("file")
    if not file:
        return None, (jsonify({"success": False, "error": "No file uploaded"}), 400)

    filename = secure_filename(file.filename or "")
    if not filename:
        return None, (jsonify({"success": False, "error": "Invalid file name"}), 400)

    input_path = data_path(UPLOADS, filename)
    file.save(input_path)
    return (filename, input_path), None


def size_stats(input_path, output_path):
    original_size = os.path.getsize(input_path)
    result_size = os.path.getsize(output_path)
    saved = original_size - result_size
    saved_percent = round(saved / original_size * 100, 2) if original_size else 0
    return original_size, result_size, saved, saved_percent

# -----------------------------------------------------------
# ROUTES
# -----------------------------------------------------------
@app.route("/health")
def health():
    return jsonify({"status": "ok"})


@app.route("/encode", methods=["POST"])
def encode_route():
    saved_upload, error = save_upload()
    if error:
        return error
    filename, input_path = saved_upload

    encoded_filename = filename + GRIN_EXTENSION
    output_path = data_path("encoded", encoded_filename)
    try:
        grin.encode(input_path, output_path)
    except Exception:
        app.logger.exception("encoding %s failed", filename)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    original_size, encoded_size, saved, saved_percent = size_stats(input_path, output_path)
    app.logger.info("encoded %s: %d -> %d bytes", filename, original_size, encoded_size)

    return jsonify({
        "success": True,
        "filename": filename,
        "encoded_filename": encoded_filename,
        "original_size": original_size,
        "encoded_size": encoded_size,
        "saved": saved,
        "saved_percent": saved_percent,
        "download_url": url_for("download", kind="encoded", filename=encoded_filename),
    })


@app.route("/decode", methods=["POST"])
def decode_route():
    saved_upload, error = save_upload()
    if error:
        return error
    filename, input_path = saved_upload

    if not filename.endswith(GRIN_EXTENSION):
        return jsonify({"success": False, "error": "Only .grin files can be decoded"}), 400

    decoded_filename = filename[:-len(GRIN_EXTENSION)]
    output_path = data_path("decoded", decoded_filename)
    try:
        grin.decode(input_path, output_path)
    except (FormatMismatchError, MalformedBitstreamError) as e:
        app.logger.warning("rejected %s: %s", filename, e)
        return jsonify({"success": False, "error": str(e)}), 400
    except Exception:
        app.logger.exception("decoding %s failed", filename)
        return jsonify({"success": False, "error": "Internal server error"}), 500

    encoded_size, decoded_size, _, _ = size_stats(input_path, output_path)
    app.logger.info("decoded %s: %d -> %d bytes", filename, encoded_size, decoded_size)

    return jsonify({
        "success": True,
        "filename": filename,
        "decoded_filename": decoded_filename,
        "encoded_size": encoded_size,
        "decoded_size": decoded_size,
        "download_url": url_for("download", kind="decoded", filename=decoded_filename),
    })


@app.route("/download/<kind>/<filename>")
def download(kind, filename):
    if kind not in DOWNLOAD_KINDS:
        return "File not found", 404

    folder = data_path(kind)
    if not os.path.isfile(os.path.join(folder, secure_filename(filename))):
        return "File not found", 404

    return send_from_directory(
        folder,
        secure_filename(filename),
        as_attachment=True,
        mimetype="application/octet-stream",
    )

# -----------------------------------------------------------
if __name__ == "__main__":
    app.run(debug=True)
