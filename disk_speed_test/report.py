# report.py
import csv


def summary_rows(summary):
    config = summary.config
    rows = [
        ["config", "target_dir", summary.target_dir],
        ["config", "total_bytes", config.payload_bytes],
        ["config", "block_bytes", config.block_bytes],
        ["config", "block_count", config.block_count],
        ["config", "durability", config.durability.value],
        ["config", "timeout_seconds", config.timeout_seconds],
    ]
    for result in (summary.write_result, summary.read_result):
        if result is None:
            continue
        phase = result.direction.value
        rows.append([phase, "outcome", result.outcome.value])
        rows.append([phase, "bytes", result.bytes_transferred])
        rows.append([phase, "elapsed_seconds", round(result.elapsed_seconds, 6)])
        rows.append([phase, "bytes_per_sec", round(result.throughput_bytes_per_sec, 1)])
        if result.error is not None:
            rows.append([phase, "error", str(result.error)])
    return rows


def write_report(summary, csv_path):
    with open(csv_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["phase", "metric", "value"])
        writer.writerows(summary_rows(summary))


def generate_plot(summary, out_path):
    phases = []
    values = []
    for label, speed in (("write", summary.write_speed), ("read", summary.read_speed)):
        if speed is not None:
            phases.append(label)
            values.append(speed / 1e6)

    if not phases:
        print("[!] No data to plot.")
        return False

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    plt.figure(figsize=(6, 4))
    plt.bar(phases, values, color="skyblue")
    plt.title(f"Sequential speed ({summary.durability.value})")
    plt.xlabel("Phase")
    plt.ylabel("MB/s")
    plt.tight_layout()
    plt.savefig(out_path)
    plt.close()
    print(f"[*] Plot saved to {out_path}")
    return True
