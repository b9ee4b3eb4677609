#!/usr/bin/env python3
"""
QR Extruder Web Interface

A simple Gradio-based web UI for converting QR code images to printable
STL solids.

Run with: python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from qr_extruder.generator import detect_color_names, process_upload


def detect_colors(image):
    """Fill the raised color dropdown with the image's two colors."""
    if image is None:
        return gr.update(choices=[], value=None), "Please upload an image first."

    try:
        primary, secondary = detect_color_names(np.asarray(image))
    except ValueError as e:
        return gr.update(choices=[], value=None), f"**Error:** {e}"

    return (
        gr.update(choices=[primary, secondary], value=primary),
        f"The two colors used are **{primary}** and **{secondary}**.",
    )


def process_image(
    image,
    raised_color: str,
    cell_size: int,
    height: float,
    scale: float,
    ascii_stl: bool
):
    """
    Process an uploaded image and generate an STL.

    Returns preview path, stats text, and file path for download.
    """
    if image is None:
        return None, "Please upload an image first.", None

    if not raised_color:
        return None, "Detect the colors and pick the one to raise.", None

    if cell_size is None:
        return None, "**Error:** Enter a cell size in pixels.", None

    try:
        stl_path, stats = process_upload(
            np.asarray(image),
            raised_color,
            int(cell_size),
            height=height,
            scale=scale,
            binary=not ascii_stl,
        )
    except ValueError as e:
        return None, f"**Error:** {e}", None

    width, img_height = stats["image_size"]
    grid_w, grid_h = stats["grid_size"]

    stats_text = f"""## STL Complete!

| Metric | Value |
|--------|-------|
| Input Size | {width} x {img_height} pixels |
| Grid Size | {grid_w} x {grid_h} cells |
| Raised Cells | {stats['raised_cells']:,} |
| Triangles | {stats['triangles']:,} |
| Wall Triangles | {stats['wall_triangles']:,} |
| Reduction vs. Isolated Blocks | {stats['triangle_reduction_percent']:.1f}% |
| Unmatched Edges | {stats['unmatched_edges']} |

**Settings:** raise {raised_color}, cell={cell_size}px, height={height}, scale={scale}
"""

    return str(stl_path), stats_text, str(stl_path)


# Build the Gradio interface
with gr.Blocks(title="QR Extruder") as app:

    gr.Markdown("""
    # QR Extruder
    ### Convert QR Codes to Printable STL Solids

    Upload a QR code image, detect its colors, pick the one to raise, and download your model!
    """)

    with gr.Row():
        # Left column - Input
        with gr.Column(scale=1):
            gr.Markdown("### Input Image")

            image_input = gr.Image(
                label="Upload QR Code",
                type="numpy",
                image_mode="RGB"
            )

            detect_btn = gr.Button("Detect Colors")
            colors_output = gr.Markdown()

            gr.Markdown("### Settings")

            raised_color = gr.Dropdown(
                choices=[],
                label="Raised Color"
            )

            cell_size = gr.Number(
                value=10,
                precision=0,
                minimum=1,
                label="Cell Size (pixels)"
            )

            height = gr.Slider(
                minimum=0.01,
                maximum=1.0,
                value=0.1,
                step=0.01,
                label="Extrusion Height"
            )

            scale = gr.Slider(
                minimum=0.1,
                maximum=10.0,
                value=1.0,
                step=0.1,
                label="Footprint Size"
            )

            ascii_stl = gr.Checkbox(value=False, label="ASCII STL")

            generate_btn = gr.Button("Generate STL", variant="primary")

        # Middle column - 3D Preview
        with gr.Column(scale=2):
            gr.Markdown("### 3D Preview")
            gr.Markdown("*Click and drag to rotate, scroll to zoom*")

            model_preview = gr.Model3D(
                label="3D Model Preview",
                clear_color=[0.1, 0.1, 0.1, 1.0]
            )

            stats_output = gr.Markdown(
                value="Upload an image and click 'Generate' to see results."
            )

        # Right column - Download
        with gr.Column(scale=1):
            gr.Markdown("### Download")

            stl_output = gr.File(label="STL")

            gr.Markdown("""
            ---
            **Tips:**
            - **Cell size** = pixels per QR module
            - Raise **black** for a classic plate
            - Raise **white** for a stamp
            """)

    # Wire up events
    detect_btn.click(
        fn=detect_colors,
        inputs=[image_input],
        outputs=[raised_color, colors_output]
    )

    generate_btn.click(
        fn=process_image,
        inputs=[
            image_input,
            raised_color,
            cell_size,
            height,
            scale,
            ascii_stl
        ],
        outputs=[model_preview, stats_output, stl_output]
    )


if __name__ == "__main__":
    print("\n" + "="*60)
    print("QR Extruder Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )
